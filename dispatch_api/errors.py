"""
Error Types and Exception Handlers

All client errors carry a machine-readable key instead of prose:
- HTTPException(detail="notFound") for single-key errors
- ExtendedBadRequest for field-keyed errors: {"username": "userAlreadyExists"}
- ImageUploadError for image uploads, reported with a generic message plus
  a tag naming the step that failed

Request validation failures are reshaped into the ExtendedBadRequest body so
the client only deals with one error format.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded


logger = logging.getLogger(__name__)


class ExtendedBadRequest(HTTPException):
    """400 error with one machine-readable key per offending field."""

    def __init__(self, errors: dict[str, str]):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail="badRequest")
        self.errors = errors


class ImageUploadError(Exception):
    """
    Failure while attaching an image to a post.

    `reason` is the tag returned to the client, `cause` the underlying
    exception (if any) which is only logged.
    """

    def __init__(self, reason: str, cause: BaseException | None = None):
        super().__init__(reason)
        self.reason = reason
        self.cause = cause


async def extended_bad_request_handler(request: Request, exc: ExtendedBadRequest) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "errors": exc.errors},
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Turn pydantic's error list into {"field": "message"}.

    Only the first error per field is kept; nested fields are joined with
    dots (sound_settings.speech).
    """
    errors: dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        # First element names where the value came from: body, query, path...
        field = ".".join(loc[1:]) or (loc[0] if loc else "body")
        errors.setdefault(field, error.get("msg", "invalid"))

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "badRequest", "errors": errors},
    )


async def image_upload_error_handler(request: Request, exc: ImageUploadError) -> JSONResponse:
    logger.warning(
        f"Image upload failed on {request.method} {request.url.path}: {exc.reason}",
        exc_info=exc.cause,
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "errorUploadingImage", "reason": exc.reason},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the custom exception handlers with the application."""
    app.add_exception_handler(ExtendedBadRequest, extended_bad_request_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ImageUploadError, image_upload_error_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    logger.debug("Exception handlers registered")
