"""
Database engine, session factory and the request-scoped session dependency.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import get_settings

settings = get_settings()


def enable_sqlite_foreign_keys(engine):
    """SQLite ignores FOREIGN KEY clauses unless each connection turns them on."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def build_engine(database_url: str):
    """Create a pooled engine. SQLite gets the thread flag, servers get a bounded pool."""
    if database_url.startswith("sqlite"):
        return enable_sqlite_foreign_keys(create_engine(
            database_url,
            connect_args={"check_same_thread": False},
        ))
    return create_engine(
        database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,  # pool exhaustion raises instead of hanging
        pool_pre_ping=True,
    )


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a session for one request and always close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
