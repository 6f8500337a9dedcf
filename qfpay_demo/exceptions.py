"""Exception hierarchy for the QFPay demo backend."""

from __future__ import annotations

from typing import Any


class QFPayDemoError(Exception):
    """Base exception for all QFPay demo errors.

    Every failure an operation can report inherits from this class.
    """

    kind = "unexpected"

    def __init__(self, message: str = "An error occurred in the QFPay demo") -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(QFPayDemoError):
    """Raised when caller input is missing or malformed.

    Always raised before any request reaches the gateway.
    """

    kind = "validation"

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"Missing required field: {field}")


class SigningError(QFPayDemoError):
    """Raised when a request cannot be signed (e.g. no client key)."""

    kind = "signing"

    def __init__(self, message: str = "QFPay client key is not configured") -> None:
        super().__init__(message)


class TransportError(QFPayDemoError):
    """Raised for non-2xx responses and network failures.

    ``status`` is None when no HTTP response was received at all.
    """

    kind = "transport"

    def __init__(
        self,
        message: str = "Gateway transport error",
        status: int | None = None,
        body: Any = None,
        original_error: Exception | None = None,
    ) -> None:
        self.status = status
        self.body = body
        self.original_error = original_error
        super().__init__(message)


class GatewayError(QFPayDemoError):
    """Raised when the gateway answers with a response code other than 0000."""

    kind = "application"

    def __init__(
        self,
        code: str,
        message: str = "unknown",
        operation: str = "unknown",
        body: Any = None,
    ) -> None:
        self.code = code
        self.gateway_message = message
        self.operation = operation
        self.body = body
        super().__init__(f"QFPay {operation} error: {code} - {message}")
