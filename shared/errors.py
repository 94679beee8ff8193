"""
Shared error handling for the Unified AI Proxy.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for proxy services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ExternalServiceError(AccessLayerException):
    """External service errors."""

    status_code = 502

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)
        if status_code is not None:
            self.status_code = status_code


class UpstreamResponseError(AccessLayerException):
    """Non-success response from an upstream that is relayed as-is."""

    def __init__(self, service: str, status_code: int, body: Any):
        super().__init__(
            "UPSTREAM_ERROR",
            f"{service}: upstream returned {status_code}",
            {"status_code": status_code},
        )
        self.status_code = status_code
        self.body = body
