"""
Authentication utilities: password hashing, JWT access tokens and the
bearer-token gate in front of every protected route.
"""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from .config import get_settings
from .logging_config import auth_logger
from .models.user import User
from .responses import ApiException, forbidden, unauthorized
from .schemas.auth import Claims

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login", auto_error=False)


class TokenError(Exception):
    """Token could not be verified: bad signature, malformed payload or expired."""


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


class TokenService:
    """Issues and verifies signed, expiring identity tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token carrying the user's identity claims."""
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.expire_minutes))
        to_encode = {
            "id": user.id,
            "email": user.email,
            "firstname": user.firstname,
            "lastname": user.lastname,
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Claims:
        """Return the verified claims or raise TokenError."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise TokenError(str(e)) from e
        try:
            return Claims(**payload)
        except ValidationError as e:
            raise TokenError("Malformed token payload") from e


@lru_cache()
def get_token_service() -> TokenService:
    settings = get_settings()
    if settings.uses_default_secret:
        auth_logger.warning("JWT_SECRET is not set; signing tokens with the built-in default secret")
    return TokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.access_token_expire_minutes,
    )


def get_current_claims(
    token: Optional[str] = Depends(oauth2_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> Claims:
    """Gate for protected routes: verified claims, or the request ends here."""
    if not token:
        auth_logger.warning("Request without bearer token")
        unauthorized("Token is required")

    try:
        return tokens.verify(token)
    except TokenError as e:
        auth_logger.warning("Rejected bearer token", reason=str(e))
        raise ApiException(400, "Invalid token", extra={"error": str(e)})


def require_self(claims: Claims, user_id: int, message: str = "You can only modify your own account") -> None:
    """Ownership check for user-scoped routes."""
    if claims.id != user_id:
        forbidden(message)
