# Response envelope helpers
# mflix_api/utils/responses.py

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

DEFAULT_SUCCESS_MESSAGE = "Operation completed successfully"


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision, e.g. 2024-01-01T12:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_success_response(data: Any, message: Optional[str] = None) -> Dict[str, Any]:
    """
    Creates a standardized success envelope.

    Args:
        data: Payload, passed through unchanged.
        message: Optional human-readable message; a generic one is used when omitted.

    Returns:
        Dict with success, message, data and timestamp.
    """
    return {
        "success": True,
        "message": message or DEFAULT_SUCCESS_MESSAGE,
        "data": data,
        "timestamp": utc_timestamp(),
    }


def create_error_response(message: str, code: Optional[str] = None, details: Any = None) -> Dict[str, Any]:
    """
    Creates a standardized error envelope.

    The message is duplicated at the top level for convenience.
    """
    return {
        "success": False,
        "message": message,
        "error": {
            "message": message,
            "code": code,
            "details": details,
        },
        "timestamp": utc_timestamp(),
    }


def envelope_response(envelope: Dict[str, Any], status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Renders an envelope; ObjectIds become hex strings and datetimes ISO strings."""
    content = jsonable_encoder(envelope, custom_encoder={ObjectId: str})
    return JSONResponse(status_code=status_code, content=content)
