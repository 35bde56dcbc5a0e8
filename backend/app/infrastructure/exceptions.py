"""
Custom Exceptions for EchoWrite

Hierarchical exception classes for proper error handling across layers.
Every error knows the HTTP status and stable code it maps to, so the
API layer can render it without a lookup table.
"""

from typing import Optional, Dict, Any


class EchoWriteError(Exception):
    """Base exception for all EchoWrite errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            },
        }


class BadRequestError(EchoWriteError):
    """Raised for invalid input or a mutation the caller may not perform."""
    status_code = 400
    code = "BAD_REQUEST"


class ValidationError(BadRequestError):
    """Raised when input validation fails."""
    code = "VALIDATION_ERROR"


class UnauthorizedError(EchoWriteError):
    """Raised for bad credentials or a missing identity."""
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized", **kwargs):
        super().__init__(message, **kwargs)


class PaymentFailedError(EchoWriteError):
    """Raised when a payment could not be collected."""
    status_code = 402
    code = "PAYMENT_FAILED"


class ForbiddenError(EchoWriteError):
    """Raised when the caller's identity does not own the resource."""
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied", **kwargs):
        super().__init__(message, **kwargs)


class NotFoundError(EchoWriteError):
    """Raised when a requested resource is not found."""
    status_code = 404
    code = "NOT_FOUND"

    def __init__(
        self,
        resource: str = "Resource",
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(f"{resource} not found", details, original_error)
        self.resource = resource


class ConflictError(EchoWriteError):
    """Raised when attempting to create a duplicate resource."""
    status_code = 409
    code = "CONFLICT"


class QuotaExceededError(EchoWriteError):
    """
    Raised when an identity has no generation allowance left.

    Details always carry the counters the client needs to render
    "N remaining" or to prompt for sign-up / upgrade.
    """
    status_code = 429
    code = "QUOTA_EXCEEDED"


class DatabaseError(EchoWriteError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class AIServiceError(EchoWriteError):
    """Raised when the text generation provider fails."""
    status_code = 502
    code = "AI_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if model:
            details["model"] = model
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)


class StripeServiceError(EchoWriteError):
    """Raised when a Stripe API call or webhook verification fails."""
    status_code = 400
    code = "STRIPE_ERROR"


class EmailDeliveryError(EchoWriteError):
    """Raised when an email could not be handed to the SMTP server."""
    status_code = 502
    code = "EMAIL_DELIVERY_FAILED"


class ConfigurationError(EchoWriteError):
    """Raised when configuration is missing or invalid."""
    code = "CONFIGURATION_ERROR"

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
