"""Result wrapper shared by all gateway operations."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from qfpay_demo.exceptions import (
    GatewayError,
    QFPayDemoError,
    TransportError,
    ValidationError,
)

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """Result wrapper for gateway operations.

    Operations never raise past their boundary: callers check ``success``.

    Attributes:
        success: Whether the operation succeeded.
        data: The normalized result if successful, None otherwise.
        error: Error message if failed, None otherwise.
        error_kind: validation, signing, transport, application or unexpected.
        error_field: Offending input field for validation failures.
        error_code: Gateway response code for application failures.
        status: HTTP status received from the gateway, if any.
        details: Raw gateway body (or other diagnostics) for failures.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_kind: str | None = None
    error_field: str | None = None
    error_code: str | None = None
    status: int | None = None
    details: Any = None

    @classmethod
    def ok(cls, data: T) -> "OperationResult[T]":
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: str = "unexpected", **extra: Any) -> "OperationResult[T]":
        """Create a failed result.

        Args:
            error: Error message describing the failure.
            kind: Failure category.
            **extra: error_field, error_code, status or details.
        """
        return cls(success=False, error=error, error_kind=kind, **extra)

    @classmethod
    def from_exception(cls, exc: Exception) -> "OperationResult[T]":
        """Translate an exception raised inside an operation."""
        if isinstance(exc, ValidationError):
            return cls.fail(exc.message, exc.kind, error_field=exc.field)
        if isinstance(exc, TransportError):
            return cls.fail(exc.message, exc.kind, status=exc.status, details=exc.body)
        if isinstance(exc, GatewayError):
            return cls.fail(exc.message, exc.kind, error_code=exc.code, details=exc.body)
        if isinstance(exc, QFPayDemoError):
            return cls.fail(exc.message, exc.kind)
        return cls.fail(str(exc) or exc.__class__.__name__, "unexpected")

    def to_dict(self, result_key: str | None = "data") -> dict[str, Any]:
        """Render the ``{success, <result_key>}`` shape returned to callers.

        With ``result_key=None`` a mapping result is merged into the top
        level instead. Failures render as ``{success: False, error,
        details?}`` plus the failure category fields that are set.
        """
        if self.success:
            data = self.data
            if dataclasses.is_dataclass(data) and not isinstance(data, type):
                data = dataclasses.asdict(data)
            if result_key is None:
                return {"success": True, **data}
            return {"success": True, result_key: data}

        payload: dict[str, Any] = {
            "success": False,
            "error": self.error,
            "error_kind": self.error_kind,
        }
        if self.error_field is not None:
            payload["field"] = self.error_field
        if self.error_code is not None:
            payload["code"] = self.error_code
        if self.details is not None:
            payload["details"] = self.details
        return payload
