# mflix_api/models/response.py

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorDetail(BaseModel):
    message: str
    code: Optional[str] = Field(None, description="Machine-readable error token, e.g. MOVIE_NOT_FOUND.")
    details: Optional[Any] = Field(None, description="Free-form diagnostic payload.")


class SuccessResponse(BaseModel, Generic[T]):
    """Envelope returned by every successful request."""
    success: bool = True
    message: str
    data: T
    timestamp: str = Field(..., description="ISO-8601 time the envelope was built.")


class ErrorResponse(BaseModel):
    """Envelope returned by every failed request."""
    success: bool = False
    message: str
    error: ErrorDetail
    timestamp: str
