"""Response envelopes shared by every endpoint."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard response wrapper.

    Attributes:
        success: Whether the request was successful.
        data: The payload; may also carry form echoes on a failed submission.
        message: A human-readable message about the response.
        error: Error details (when success is False).
    """

    success: bool = True
    data: T | None = None
    message: str = "Operation completed successfully"
    error: dict[str, Any] | None = None


class ErrorResponse(ApiResponse[None]):
    """Envelope produced by the global exception handler."""

    success: bool = False
    message: str = "An error occurred"
    error: dict[str, Any] | None = None
