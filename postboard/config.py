"""
Application configuration using environment variables.
"""
from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import List

# Fallback signing secret used when JWT_SECRET is unset. Weak on purpose of
# compatibility with existing tokens; refused in production.
DEFAULT_JWT_SECRET = "supersecretkey"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Postboard API"
    debug: bool = False
    environment: str = "development"

    # Security
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Database
    database_url: str = "sqlite:///./postboard.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30  # seconds

    # Media
    media_root: str = "files"
    profile_dir: str = "usersProfiles"
    post_image_dir: str = "userPost"
    max_image_bytes: int = 3 * 1024 * 1024
    unique_filenames: bool = False

    # Pagination
    default_page: int = 1
    default_page_size: int = 3

    # CORS
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Rate limiting
    login_rate_limit: str = "5/minute"
    register_rate_limit: str = "3/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def profile_path(self) -> Path:
        return Path(self.media_root) / self.profile_dir

    @property
    def post_image_path(self) -> Path:
        return Path(self.media_root) / self.post_image_dir

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Validate secret key on startup
settings = get_settings()
if settings.environment == "production" and settings.uses_default_secret:
    raise ValueError(
        "JWT_SECRET must be set in production! "
        "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
    )
