"""
Error taxonomy for ledger operations.

Ledger code raises ``LedgerError`` subclasses internally. At the public
boundary every operation converts them into an ``OperationResult`` carrying
a ``LedgerFailure`` (kind + message), so callers never see an uncaught
exception.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Kinds of structured failure returned by ledger operations."""

    NOT_INITIALIZED = "not_initialized"
    UNKNOWN_CURRENCY = "unknown_currency"
    DUPLICATE_NAME = "duplicate_name"
    WALLET_NOT_FOUND = "wallet_not_found"
    EXPENSE_NOT_FOUND = "expense_not_found"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    WALLET_REQUIRED = "wallet_required"
    WALLET_IN_USE = "wallet_in_use"
    INVALID_INPUT = "invalid_input"
    STORAGE_FAILURE = "storage_failure"


class LedgerError(Exception):
    """Base class for all ledger errors."""

    kind: ErrorKind = ErrorKind.STORAGE_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @classmethod
    def from_message(cls, message: str) -> "LedgerError":
        return cls(message)


class NotInitializedError(LedgerError):
    kind = ErrorKind.NOT_INITIALIZED


class UnknownCurrencyError(LedgerError):
    kind = ErrorKind.UNKNOWN_CURRENCY

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or f"Unknown currency code: {code}")
        self.code = code

    @classmethod
    def from_message(cls, message: str) -> "UnknownCurrencyError":
        return cls("", message)


class DuplicateNameError(LedgerError):
    kind = ErrorKind.DUPLICATE_NAME


class WalletNotFoundError(LedgerError):
    kind = ErrorKind.WALLET_NOT_FOUND


class ExpenseNotFoundError(LedgerError):
    kind = ErrorKind.EXPENSE_NOT_FOUND


class InsufficientBalanceError(LedgerError):
    kind = ErrorKind.INSUFFICIENT_BALANCE


class WalletRequiredError(LedgerError):
    kind = ErrorKind.WALLET_REQUIRED


class WalletInUseError(LedgerError):
    kind = ErrorKind.WALLET_IN_USE


class InvalidInputError(LedgerError):
    kind = ErrorKind.INVALID_INPUT


class StorageFailureError(LedgerError):
    """Wraps a lower-level database error."""

    kind = ErrorKind.STORAGE_FAILURE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


_ERRORS_BY_KIND = {
    ErrorKind.NOT_INITIALIZED: NotInitializedError,
    ErrorKind.UNKNOWN_CURRENCY: UnknownCurrencyError,
    ErrorKind.DUPLICATE_NAME: DuplicateNameError,
    ErrorKind.WALLET_NOT_FOUND: WalletNotFoundError,
    ErrorKind.EXPENSE_NOT_FOUND: ExpenseNotFoundError,
    ErrorKind.INSUFFICIENT_BALANCE: InsufficientBalanceError,
    ErrorKind.WALLET_REQUIRED: WalletRequiredError,
    ErrorKind.WALLET_IN_USE: WalletInUseError,
    ErrorKind.INVALID_INPUT: InvalidInputError,
    ErrorKind.STORAGE_FAILURE: StorageFailureError,
}


@dataclass(frozen=True)
class LedgerFailure:
    """A structured failure: what went wrong and a human readable message."""

    kind: ErrorKind
    message: str

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {"kind": self.kind.value, "message": self.message}

    @classmethod
    def from_error(cls, error: LedgerError) -> "LedgerFailure":
        return cls(kind=error.kind, message=error.message)

    def to_error(self) -> LedgerError:
        """Rebuild the matching exception for callers that prefer raising."""
        return _ERRORS_BY_KIND[self.kind].from_message(self.message)


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of a ledger or reporting operation."""

    success: bool
    value: Optional[T] = None
    error: Optional[LedgerFailure] = None

    @classmethod
    def ok(cls, value: Any = None) -> "OperationResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: LedgerError) -> "OperationResult":
        return cls(success=False, error=LedgerFailure.from_error(error))

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    def unwrap(self) -> T:
        """Return the value, or raise the error this result carries."""
        if self.error is not None:
            raise self.error.to_error()
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        value = self.value
        if hasattr(value, "to_dict"):
            value = value.to_dict()
        return {
            "success": self.success,
            "value": value,
            "error": self.error.to_dict() if self.error else None,
        }
