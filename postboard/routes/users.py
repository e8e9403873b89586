"""
User routes: listing, lookup, profile update and password change.
"""
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from .. import crud
from ..auth import get_current_claims, get_password_hash, require_self, verify_password
from ..config import get_settings
from ..database import get_db
from ..logging_config import api_logger
from ..models.user import User
from ..responses import bad_request, conflict, not_found, success
from ..schemas.auth import Claims
from ..schemas.users import ChangePasswordRequest, UserResponse
from ..storage import MediaStore, get_profile_store, read_upload
from ..validation import (
    validate_email,
    validate_firstname,
    validate_lastname,
    validate_password,
    validate_phone,
)

settings = get_settings()

router = APIRouter(prefix="/api", tags=["users"])


def user_to_dict(user: User) -> dict:
    """Public user shape; the password hash never leaves the server."""
    return UserResponse.model_validate(user).model_dump()


@router.get("/users")
def get_users(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
):
    """Paginated user listing."""
    page_num, page_size = crud.parse_pagination(page, limit)
    users, total = crud.list_users(db, page_num, page_size)
    return success(users=[user_to_dict(u) for u in users], total_users=total)


@router.get("/user/{user_id}")
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
):
    user = crud.get_user(db, user_id)
    if not user:
        not_found("User")
    return success(user=user_to_dict(user))


@router.put("/user/{user_id}")
def update_user(
    user_id: int,
    profile: Optional[UploadFile] = File(None),
    email: str = Form(""),
    firstname: str = Form(""),
    lastname: str = Form(""),
    ph: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
    profile_store: MediaStore = Depends(get_profile_store),
):
    """Update any subset of the caller's own fields and profile image."""
    user = crud.get_user(db, user_id)
    if not user:
        not_found("User")
    require_self(claims, user.id, "You can only update your own profile")

    changes = {}
    email, firstname, lastname, ph = email.strip(), firstname.strip(), lastname.strip(), ph.strip()

    if email:
        validate_email(email)
        if crud.email_taken(db, email, exclude_user_id=user.id):
            conflict("Email already exists")
        changes["email"] = email
    if firstname:
        validate_firstname(firstname)
        changes["firstname"] = firstname
    if lastname:
        validate_lastname(lastname)
        changes["lastname"] = lastname
    if ph:
        validate_phone(ph)
        changes["ph"] = ph
    if password:
        validate_password(password)
        changes["password"] = get_password_hash(password)

    image = read_upload(profile, settings.max_image_bytes) if profile is not None else None

    if not changes and image is None:
        return success("Nothing to update", user=user_to_dict(user))

    old_profile = user.profile
    if image is not None:
        changes["profile"] = profile_store.save(*image)
    changes["updated_at"] = datetime.now(timezone.utc)

    updated = crud.update_user_fields(db, user.id, changes)

    if image is not None and old_profile:
        profile_store.discard(old_profile)

    api_logger.info("User updated", user_id=user.id, fields=sorted(changes))
    return success("User updated successfully", user=user_to_dict(updated))


@router.put("/changePassword/{user_id}")
def change_password(
    user_id: int,
    body: ChangePasswordRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
):
    """Replace the caller's password after checking the old one."""
    require_self(claims, user_id, "You can only change your own password")

    user = crud.get_user(db, user_id)
    if not user:
        not_found("User")

    if not verify_password(body.old_password, user.password):
        bad_request("Old password is incorrect")
    if body.new_password == body.old_password:
        bad_request("New password must be different from old password")
    validate_password(body.new_password)

    crud.update_user_fields(
        db,
        user.id,
        {"password": get_password_hash(body.new_password), "updated_at": datetime.now(timezone.utc)},
    )
    api_logger.info("Password changed", user_id=user.id)
    return success("Password changed successfully")
