"""
Authentication routes: registration with profile image, and JSON login.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import crud
from ..auth import TokenService, get_password_hash, get_token_service, verify_password
from ..config import get_settings
from ..database import get_db
from ..limiter import limiter
from ..logging_config import api_logger, auth_logger
from ..responses import ApiException, bad_request, conflict, created, success
from ..schemas.auth import UserLogin
from ..storage import MediaStore, get_profile_store, read_upload
from ..validation import (
    validate_email,
    validate_firstname,
    validate_lastname,
    validate_password,
    validate_phone,
)
from .users import user_to_dict

settings = get_settings()

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.register_rate_limit)
def register(
    request: Request,
    profile: Optional[UploadFile] = File(None),
    email: str = Form(""),
    firstname: str = Form(""),
    lastname: str = Form(""),
    ph: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_db),
    profile_store: MediaStore = Depends(get_profile_store),
):
    """Register a new user account with a profile image."""
    image = read_upload(profile, settings.max_image_bytes) if profile is not None else None

    if not all((email, firstname, lastname, ph, password)):
        bad_request("All fields are required")

    validate_email(email)
    validate_firstname(firstname)
    validate_lastname(lastname)
    validate_phone(ph)
    validate_password(password)

    if crud.email_taken(db, email):
        conflict("Email already exists")

    if image is None:
        bad_request("Profile image is required")

    stored_profile = profile_store.save(*image)

    try:
        user = crud.create_user(
            db,
            profile=stored_profile,
            email=email,
            firstname=firstname,
            lastname=lastname,
            ph=ph,
            password=get_password_hash(password),
        )
    except SQLAlchemyError:
        db.rollback()
        profile_store.discard(stored_profile)
        raise

    api_logger.info("User registered", user_id=user.id)
    return created("User created successfully", user=user_to_dict(user))


@router.post("/login")
@limiter.limit(settings.login_rate_limit)
def login(
    request: Request,
    credentials: UserLogin,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """Login with JSON body (email/password) and receive a bearer token."""
    if not credentials.email or not credentials.password:
        bad_request("Email and password are required")

    user = crud.get_user_by_email(db, credentials.email)
    if not user or not verify_password(credentials.password, user.password):
        auth_logger.warning("Failed login", email=credentials.email)
        raise ApiException(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    auth_logger.info("User logged in", user_id=user.id)
    return success(
        "Login successful",
        token=tokens.issue(user),
        user=user_to_dict(user),
    )
