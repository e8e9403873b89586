"""
Postboard API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401  registers tables on Base.metadata
from .auth import get_token_service
from .config import get_settings
from .database import engine, Base
from .limiter import limiter
from .logging_config import api_logger
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware
from .responses import (
    api_exception_handler,
    database_error_handler,
    field_error_handler,
    media_error_handler,
    request_validation_handler,
    success,
)
from .routes import auth_router, users_router, posts_router
from .storage import MediaStoreError, get_post_store, get_profile_store
from .validation import FieldError

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and media directories before serving."""
    # In production, use migrations instead
    Base.metadata.create_all(bind=engine)
    get_profile_store().ensure_directory()
    get_post_store().ensure_directory()
    get_token_service()
    api_logger.info("Postboard API started", environment=settings.environment)

    yield

    engine.dispose()


app = FastAPI(
    title="Postboard API",
    description="Users, bearer-token auth and image posts",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_exception_handler(StarletteHTTPException, api_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(FieldError, field_error_handler)
app.add_exception_handler(SQLAlchemyError, database_error_handler)
app.add_exception_handler(MediaStoreError, media_error_handler)
app.add_exception_handler(Exception, api_exception_handler)

app.add_middleware(SecurityHeadersMiddleware)

# Request logging middleware (only in debug mode)
if settings.debug:
    app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=3600,
)

# Routes
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(posts_router)

# Stored images
app.mount("/profile", StaticFiles(directory=settings.profile_path, check_dir=False), name="profile")
app.mount("/postImages", StaticFiles(directory=settings.post_image_path, check_dir=False), name="post_images")


@app.get("/api/health")
def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return success("ok", environment=settings.environment, version="1.0.0")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("postboard.main:app", host="127.0.0.1", port=8000, reload=settings.debug)
