"""
Filesystem-backed media store for profile and post images.
"""
import os
import secrets
import time
from pathlib import Path
from typing import List, Tuple, Union

from .config import get_settings
from .logging_config import media_logger, timed
from .validation import validate_image_size, validate_image_type


class MediaStoreError(Exception):
    """Raised when a file cannot be written, found or removed."""


class MediaStore:
    """Stores uploaded bytes under `<epoch-seconds>_<original>` in one directory."""

    def __init__(self, directory: Union[str, Path], unique_filenames: bool = False):
        self.directory = Path(directory)
        self.unique_filenames = unique_filenames
        self.log = media_logger.bind(directory=str(self.directory))

    def path_for(self, name: str) -> Path:
        # Only the basename is joined so a client cannot escape the directory.
        return self.directory / os.path.basename(name)

    def stored_name(self, original_name: str) -> str:
        base = os.path.basename(original_name)
        timestamp = int(time.time())
        if self.unique_filenames:
            return f"{timestamp}_{secrets.token_hex(4)}_{base}"
        return f"{timestamp}_{base}"

    def ensure_directory(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise MediaStoreError("Failed to create upload directory") from e

    @timed(media_logger)
    def save(self, data: bytes, original_name: str) -> str:
        """Write `data` and return the name it was stored under."""
        self.ensure_directory()
        name = self.stored_name(original_name)
        try:
            self.path_for(name).write_bytes(data)
        except OSError as e:
            raise MediaStoreError("Failed to write image file") from e
        self.log.info("Stored image", filename=name, size=len(data))
        return name

    def save_many(self, files: List[Tuple[bytes, str]]) -> List[str]:
        return [self.save(data, original_name) for data, original_name in files]

    def exists(self, name: str) -> bool:
        return bool(name) and self.path_for(name).is_file()

    def remove(self, name: str) -> None:
        """Delete a stored file. A missing file is an error, not a no-op."""
        path = self.path_for(name)
        if not path.is_file():
            raise MediaStoreError(f"File not found: {name}")
        try:
            path.unlink()
        except OSError as e:
            raise MediaStoreError(f"Failed to delete image {name}") from e
        self.log.info("Removed image", filename=name)

    def discard(self, name: str) -> bool:
        """Best-effort removal used by cleanup paths; failures are logged, not raised."""
        try:
            self.remove(name)
        except MediaStoreError as e:
            self.log.warning(f"Could not remove image: {e}", filename=name)
            return False
        return True


def get_profile_store() -> MediaStore:
    settings = get_settings()
    return MediaStore(settings.profile_path, unique_filenames=settings.unique_filenames)


def get_post_store() -> MediaStore:
    settings = get_settings()
    return MediaStore(settings.post_image_path, unique_filenames=settings.unique_filenames)


def read_upload(upload, max_bytes: int) -> Tuple[bytes, str]:
    """Validate an uploaded image's name and size and return `(data, filename)`.

    Reads at most one byte past the limit so oversized bodies are never held whole.
    """
    filename = upload.filename or "unknown.jpg"
    validate_image_type(filename)
    data = upload.file.read(max_bytes + 1)
    validate_image_size(len(data), max_bytes)
    return data, filename
