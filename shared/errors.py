"""
Shared error handling for the Eligibility Atom engine.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
    tenant_id: Optional[str] = None
    request_id: Optional[str] = None


class EngineException(Exception):
    """Base exception for the engine and its collaborators."""

    kind = "execution"
    retryable = False

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, tenant_id: Optional[str] = None, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            error=self.code,
            message=self.message,
            details=self.details,
            tenant_id=tenant_id,
            request_id=request_id
        )


class ExternalServiceError(EngineException):
    """External collaborator errors (cache, store)."""

    retryable = True

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)
