"""
Shared error handling for the Vault Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class VaultAccessException(Exception):
    """Base exception for Vault Access Layer services."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class InvalidArgumentError(VaultAccessException):
    """A required identifier or configuration key is missing or blank."""

    status_code = 400

    def __init__(self, argument: str, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.argument = argument
        details = {"argument": argument, **(details or {})}
        super().__init__("INVALID_ARGUMENT", message or f"Value cannot be null or blank. (Parameter '{argument}')", details)


class InvalidFormatError(VaultAccessException):
    """A value could not be decoded into the requested format."""

    status_code = 400

    def __init__(self, message: str = "Invalid format", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_FORMAT", message, details)


class NotFoundError(VaultAccessException):
    """The vault had no value for the requested name."""

    status_code = 404

    def __init__(
        self,
        resource_kind: str,
        name: str,
        provider_status: Optional[int] = None,
        provider_reason: Optional[str] = None,
    ):
        self.resource_kind = resource_kind
        self.name = name
        self.provider_status = provider_status
        self.provider_reason = provider_reason
        super().__init__(
            "NOT_FOUND",
            f"Failed to retrieve {resource_kind}: '{name}'. Code={_blank_if_none(provider_status)} "
            f"Reason={_blank_if_none(provider_reason)}",
            {
                "resource_kind": resource_kind,
                "name": name,
                "provider_status": provider_status,
                "provider_reason": provider_reason,
            }
        )


class EmptyPayloadError(VaultAccessException):
    """The vault returned a value whose content is empty."""

    status_code = 422

    def __init__(self, message: str = "Resource contents are empty.", details: Optional[Dict[str, Any]] = None):
        super().__init__("EMPTY_PAYLOAD", message, details)


class OperationCancelledError(VaultAccessException):
    """The caller cancelled the operation before the remote call was made."""

    status_code = 499

    def __init__(self, message: str = "The operation was canceled.", details: Optional[Dict[str, Any]] = None):
        super().__init__("OPERATION_CANCELLED", message, details)


def _blank_if_none(value: Any) -> str:
    return "" if value is None else str(value)
