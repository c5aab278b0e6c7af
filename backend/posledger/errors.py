"""
Engine error kinds.

Every error here is recoverable: the route layer reports it to the caller as a
declined operation with a reason, and the service that raised it has not
mutated any state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar


class LedgerError(Exception):
    """Base class for declined engine operations."""

    code = "LEDGER_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class OutOfStock(LedgerError):
    code = "OUT_OF_STOCK"
    http_status = 409


class EmptyCart(LedgerError):
    code = "EMPTY_CART"


class NoActiveCashier(LedgerError):
    code = "NO_ACTIVE_CASHIER"
    http_status = 401


class NotFound(LedgerError):
    code = "NOT_FOUND"
    http_status = 404


class InvalidAmount(LedgerError):
    code = "INVALID_AMOUNT"


class OverRefund(LedgerError):
    code = "OVER_REFUND"
    http_status = 409


class InvalidDiscount(LedgerError):
    code = "INVALID_DISCOUNT"


class InvalidPaymentMethod(LedgerError):
    code = "INVALID_PAYMENT_METHOD"


class AuthenticationFailed(LedgerError):
    code = "AUTHENTICATION_FAILED"
    http_status = 401


class ImmutableRecordError(LedgerError):
    """Raised when a flush would alter a recorded transaction or refund."""

    code = "IMMUTABLE_RECORD"
    http_status = 409


T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a cart call that reports failure instead of raising."""

    value: Optional[T] = None
    error: Optional[LedgerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(value=value)

    @classmethod
    def failure(cls, error: LedgerError) -> "Result":
        return cls(error=error)
