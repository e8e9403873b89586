"""
Postboard Response Utilities
Standardized response format and error handling
"""
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, Optional

from .logging_config import api_logger, db_logger, media_logger
from .storage import MediaStoreError
from .validation import IMAGE_TYPE_MESSAGE, FieldError

# multipart fields that carry image files
UPLOAD_FIELDS = {"profile", "postImgs"}


# ============================================================
# SUCCESS RESPONSES
# ============================================================

def success(message: Optional[str] = None, **payload: Any) -> Dict:
    """Create success response"""
    response: Dict[str, Any] = {"status": True}

    if message:
        response["message"] = message

    response.update(payload)
    return response


def created(message: str = "Created successfully", **payload: Any) -> Dict:
    """201 Created response body"""
    return success(message, **payload)


# ============================================================
# ERROR RESPONSES
# ============================================================

class ApiException(HTTPException):
    """API exception whose body follows the {status, message} envelope"""

    def __init__(
        self,
        status_code: int,
        message: str,
        extra: Dict = None,
        headers: Dict[str, str] = None,
    ):
        self.extra = extra or {}
        super().__init__(status_code=status_code, detail=message, headers=headers)


def bad_request(message: str, extra: Dict = None):
    raise ApiException(400, message, extra)

def unauthorized(message: str = "Token is required"):
    raise ApiException(401, message, headers={"WWW-Authenticate": "Bearer"})

def forbidden(message: str = "Access denied"):
    raise ApiException(403, message)

def not_found(resource: str = "Resource"):
    raise ApiException(404, f"{resource} not found")

def conflict(message: str = "Resource conflict"):
    raise ApiException(409, message)


def error_body(message: str, **extra: Any) -> Dict:
    body = {"status": False, "message": message}
    body.update(extra)
    return body


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

async def api_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for ApiException and plain HTTP errors"""

    if isinstance(exc, ApiException):
        log = api_logger.error if exc.status_code >= 500 else api_logger.warning
        log(
            f"API Error: {exc.detail}",
            status_code=exc.status_code,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.detail, **exc.extra),
            headers=exc.headers,
        )

    if isinstance(exc, StarletteHTTPException):
        api_logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    api_logger.error(
        f"Unexpected error: {exc}",
        error=exc,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=500,
        content=error_body("An unexpected error occurred"),
    )


async def field_error_handler(request: Request, exc: FieldError) -> JSONResponse:
    """Validator failures are client errors carrying the rule's reason"""
    api_logger.warning(
        f"Validation failed: {exc.reason}",
        path=request.url.path,
    )
    return JSONResponse(status_code=400, content=error_body(exc.reason))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and path params, reported as the first problem only"""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        loc = first.get("loc", ())
        if UPLOAD_FIELDS.intersection(str(part) for part in loc):
            # a blank file input arrives as a plain string part
            message = IMAGE_TYPE_MESSAGE
        else:
            location = ".".join(str(part) for part in loc if part != "body")
            message = f"{location}: {first.get('msg')}" if location else first.get("msg", message)
    api_logger.warning(
        f"Request validation failed: {message}",
        path=request.url.path,
    )
    return JSONResponse(status_code=400, content=error_body(message))


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Store failures: detail stays in the log, client gets a generic message"""
    db_logger.error(
        "Database error",
        error=exc,
        path=request.url.path,
    )
    return JSONResponse(status_code=500, content=error_body("Database error"))


async def media_error_handler(request: Request, exc: MediaStoreError) -> JSONResponse:
    media_logger.error(
        f"Media store error: {exc}",
        error=exc,
        path=request.url.path,
    )
    return JSONResponse(status_code=500, content=error_body(str(exc)))
