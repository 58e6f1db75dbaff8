"""
Error Taxonomy — Payment errors carry their HTTP status and optional details.
"""
from typing import Any, Optional


class PaymentError(Exception):
    """Base class for every failure surfaced by the payment handlers."""

    status_code: int = 500
    default_message: str = "Payment request failed"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidRequestError(PaymentError):
    """Bad or missing caller input."""
    status_code = 400
    default_message = "Invalid request"


class ConfigurationError(PaymentError):
    """Missing gateway credentials or URLs; fixable by the operator."""
    status_code = 500
    default_message = "Safepay credentials not configured"


class UpstreamError(PaymentError):
    """Gateway transport failure, timeout or non-2xx response."""
    status_code = 500
    default_message = "Safepay request failed"


class MissingTokenError(PaymentError):
    """The gateway accepted the request but returned no usable token."""
    status_code = 502
    default_message = "No token received from Safepay"


class DatabaseError(PaymentError):
    status_code = 500
    default_message = "Database operation failed"
