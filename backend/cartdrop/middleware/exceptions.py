"""Application exceptions and the handlers that render them.

Every error leaves the API in one envelope:

    {"error": {"code": "...", "message": "...", "details": {...}}}

The order pipeline raises the CartDropException subclasses below; each
one maps to one stage of a submit attempt (validation, image processing,
upload, persistence).
"""

import logging
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class CartDropException(Exception):
    """Base exception for CartDrop application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class WizardValidationError(CartDropException):
    """A wizard field or step gate failed. Never reaches the network."""

    def __init__(self, message: str, step: str | None = None):
        self.step = step
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="WIZARD_VALIDATION_ERROR",
        )


class ImageProcessingError(CartDropException):
    """A selected image could not be decoded or re-encoded."""

    def __init__(self, filename: str, reason: str = "unreadable image"):
        self.filename = filename
        super().__init__(
            message=f"Image processing failed for {filename}: {reason}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="IMAGE_PROCESSING_FAILED",
        )


class UploadError(CartDropException):
    """The object store rejected an upload."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        super().__init__(
            message=f"Upload failed for {filename}: {reason}",
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="UPLOAD_FAILED",
        )


class SubmissionError(CartDropException):
    """The order record could not be created."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="SUBMISSION_FAILED",
        )


class ResourceNotFoundError(CartDropException):
    """Exception for resources not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


# ── Rendering ────────────────────────────────────────────────

def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: dict | None = None,
) -> JSONResponse:
    error: dict = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def _where(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


def _details_for(exc: CartDropException) -> dict | None:
    if isinstance(exc, WizardValidationError) and exc.step:
        return {"step": exc.step}
    if isinstance(exc, (ImageProcessingError, UploadError)):
        return {"filename": exc.filename}
    return None


# Substring of the driver message → (public message, error code)
_INTEGRITY_MESSAGES = (
    ("unique", "A record with this value already exists", "DUPLICATE_RECORD"),
    ("foreign key", "Referenced record does not exist", "FOREIGN_KEY_VIOLATION"),
    ("not null", "Required field is missing", "NULL_VALUE_NOT_ALLOWED"),
    ("check", "A value is out of range", "CHECK_VIOLATION"),
)


# ── Handlers ─────────────────────────────────────────────────

async def cartdrop_exception_handler(request: Request, exc: CartDropException) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("%s %s: %s", exc.error_code, request.url.path, exc.message, extra=_where(request))
    return create_error_response(exc.status_code, exc.message, exc.error_code, _details_for(exc))


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail)
    response = create_error_response(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    errors = [
        {
            "field": " -> ".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.info("Rejected request body on %s (%d errors)", request.url.path, len(errors))
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "VALIDATION_ERROR",
        {"errors": errors},
    )


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Integrity error on %s: %s", request.url.path, exc.orig, extra=_where(request))
    text = str(exc.orig).lower()
    for needle, message, code in _INTEGRITY_MESSAGES:
        if needle in text:
            break
    else:
        message, code = "Database constraint violation", "INTEGRITY_ERROR"
    return create_error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, message, code)


async def operational_exception_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("Database unavailable on %s: %s", request.url.path, exc.orig, extra=_where(request))
    return create_error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Database temporarily unavailable. Please try again.",
        "DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s", request.url.path, extra=_where(request))
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        "INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app) -> None:
    for exc_class, handler in (
        (CartDropException, cartdrop_exception_handler),
        (HTTPException, http_exception_handler),
        (StarletteHTTPException, http_exception_handler),
        (RequestValidationError, validation_exception_handler),
        (ValidationError, validation_exception_handler),
        (IntegrityError, integrity_exception_handler),
        (OperationalError, operational_exception_handler),
        (Exception, general_exception_handler),
    ):
        app.add_exception_handler(exc_class, handler)
