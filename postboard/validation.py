"""
Field validators for user and post input.

Every rule is a plain function that returns None when the value is fine and
raises FieldError with a human-readable reason otherwise. Callers run rules in
a fixed order, so the first failing rule is the one reported.
"""
import re
from typing import Iterable

ALLOWED_IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "webp")
IMAGE_TYPE_MESSAGE = "Image type must be jpeg, jpg, webp or png"
PASSWORD_SPECIAL_CHARS = "!@#$%^&*()_+-=[]{}; ':\"\\|,.<>/?"

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
LETTERS_RE = re.compile(r"^[A-Za-z]+$")
DIGITS_RE = re.compile(r"^[0-9]+$")


class FieldError(ValueError):
    """A single input field failed its rule."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def validate_email(email: str) -> None:
    if not email:
        raise FieldError("Email is required")
    if len(email) > 250:
        raise FieldError("Email is too long")
    if not EMAIL_RE.match(email):
        raise FieldError("Email is invalid")


def validate_password(password: str) -> None:
    if not password:
        raise FieldError("Password is required")
    if len(password) < 6 or len(password) > 20:
        raise FieldError("Password must be 6-20 characters")
    if " " in password:
        raise FieldError("Password must not contain spaces")
    if not any(c.isupper() for c in password):
        raise FieldError("Password must have at least 1 uppercase letter")
    if not any(c.islower() for c in password):
        raise FieldError("Password must have at least 1 lowercase letter")
    if not any(c.isdigit() for c in password):
        raise FieldError("Password must have at least 1 number")
    if not any(c in PASSWORD_SPECIAL_CHARS for c in password):
        raise FieldError("Password must have at least 1 special character")


def validate_firstname(name: str) -> None:
    if not name:
        raise FieldError("First name is required")
    if len(name) < 3 or len(name) > 30:
        raise FieldError("Firstname must be 3-30 characters")
    if not LETTERS_RE.match(name):
        raise FieldError("Firstname must contain only letters")


def validate_lastname(name: str) -> None:
    if not name:
        raise FieldError("Last name is required")
    if len(name) > 20:
        raise FieldError("Lastname must be 1-20 characters")
    if not LETTERS_RE.match(name):
        raise FieldError("Lastname must contain only letters")


def validate_phone(ph: str) -> None:
    if not ph:
        raise FieldError("Phone is required")
    if len(ph) < 10 or len(ph) > 15:
        raise FieldError("Phone must be 10-15 digits")
    if not DIGITS_RE.match(ph):
        raise FieldError("Phone must contain only numbers")


def validate_image_type(filename: str) -> None:
    """Check the extension after the last dot, ignoring case."""
    extension = filename.rsplit(".", 1)[-1].lower() if filename else ""
    if extension not in ALLOWED_IMAGE_EXTENSIONS:
        raise FieldError(IMAGE_TYPE_MESSAGE)


def validate_post_name(name: str) -> None:
    if not name or not name.strip():
        raise FieldError("Name is required")
    if len(name) < 2 or len(name) > 100:
        raise FieldError("Name length must be between 2 and 100 characters")


def validate_post_description(desc: str) -> None:
    if not desc or not desc.strip():
        raise FieldError("Description is required")
    if len(desc) < 3 or len(desc) > 500:
        raise FieldError("Description length must be between 3 and 500 characters")


def validate_post_images(filenames: Iterable[str]) -> None:
    filenames = list(filenames)
    if not filenames:
        raise FieldError("At least one image is required")
    for filename in filenames:
        validate_image_type(filename)


def validate_image_size(size: int, limit: int) -> None:
    if size > limit:
        raise FieldError(f"File size should be less than {limit // (1024 * 1024)}MB")
