# Error taxonomy and the top-level error -> envelope mapping
# mflix_api/core/errors.py

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from pymongo.errors import BulkWriteError, DuplicateKeyError, OperationFailure, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from mflix_api.utils.responses import create_error_response, envelope_response

logger = logging.getLogger(__name__)

DUPLICATE_KEY_CODE = 11000
DOCUMENT_VALIDATION_FAILURE_CODE = 121


# --- Custom Exceptions ---
class APIError(Exception):
    """Base class for errors that map directly onto a failure envelope."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details


class ValidationError(APIError):
    def __init__(self, details: Any = None):
        super().__init__("Validation failed", "VALIDATION_ERROR", status.HTTP_400_BAD_REQUEST, details)


class InvalidObjectIdError(APIError):
    def __init__(self, message: str = "Invalid movie ID format", details: Any = None):
        super().__init__(message, "INVALID_OBJECT_ID", status.HTTP_400_BAD_REQUEST, details)


class MovieNotFoundError(APIError):
    def __init__(self, message: str = "Movie not found"):
        super().__init__(message, "MOVIE_NOT_FOUND", status.HTTP_404_NOT_FOUND)


class EmbeddingNotConfiguredError(APIError):
    def __init__(self):
        super().__init__(
            "Vector search unavailable: VOYAGE_API_KEY not configured. Please add your API key to the .env file",
            "SERVICE_UNAVAILABLE",
            status.HTTP_400_BAD_REQUEST,
        )


class EmbeddingAuthError(APIError):
    """The embedding provider rejected our credentials; the caller can fix this."""

    def __init__(self, details: Any = None):
        super().__init__(
            "Embedding provider rejected the API key",
            "EMBEDDING_AUTH_ERROR",
            status.HTTP_401_UNAUTHORIZED,
            details,
        )


class EmbeddingServiceError(APIError):
    """Embedding provider unreachable, erroring or returning an unusable payload."""

    def __init__(self, message: str = "Embedding service unavailable", details: Any = None):
        super().__init__(message, "EMBEDDING_SERVICE_ERROR", status.HTTP_503_SERVICE_UNAVAILABLE, details)


# --- Store error classification ---
def _has_duplicate_key(exc: BulkWriteError) -> bool:
    write_errors = (exc.details or {}).get("writeErrors", [])
    return any(err.get("code") == DUPLICATE_KEY_CODE for err in write_errors)


def map_database_error(exc: PyMongoError) -> Dict[str, Any]:
    """
    Translates a driver error into status/message/code/details.

    Args:
        exc: Any PyMongoError raised by a Motor call.

    Returns:
        Dict with keys status_code, message, code, details.
    """
    if isinstance(exc, DuplicateKeyError) or (isinstance(exc, BulkWriteError) and _has_duplicate_key(exc)):
        return {
            "status_code": status.HTTP_409_CONFLICT,
            "message": "Duplicate key error",
            "code": "DUPLICATE_KEY",
            "details": "A document with this data already exists",
        }
    # WriteError is a subclass of OperationFailure
    if isinstance(exc, OperationFailure) and exc.code == DOCUMENT_VALIDATION_FAILURE_CODE:
        return {
            "status_code": status.HTTP_400_BAD_REQUEST,
            "message": "Document validation failed",
            "code": "DOCUMENT_VALIDATION_ERROR",
            "details": str(exc),
        }
    code = getattr(exc, "code", None)
    return {
        "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
        "message": "Database error",
        "code": "DATABASE_ERROR",
        "details": code if code is not None else str(exc),
    }


# --- Exception handlers ---
async def api_error_handler(request: Request, exc: APIError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message} ({exc.details})")
    else:
        logger.debug(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return envelope_response(
        create_error_response(exc.message, exc.code, exc.details),
        status_code=exc.status_code,
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return await api_error_handler(request, ValidationError(jsonable_encoder(exc.errors())))


async def database_error_handler(request: Request, exc: PyMongoError):
    mapped = map_database_error(exc)
    logger.error(
        f"Database error on {request.method} {request.url.path}: {exc}",
        exc_info=mapped["status_code"] >= 500,
    )
    return envelope_response(
        create_error_response(mapped["message"], mapped["code"], mapped["details"]),
        status_code=mapped["status_code"],
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return envelope_response(
        create_error_response(str(exc.detail), f"HTTP_{exc.status_code}"),
        status_code=exc.status_code,
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return envelope_response(
        create_error_response("Internal server error", "INTERNAL_ERROR", str(exc) or exc.__class__.__name__),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
