from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    FATAL = "FATAL"


class LedgerError(Exception):
    """Base for every domain error.

    Callers should switch on ``kind`` rather than on the concrete class.
    """

    kind: ErrorKind = ErrorKind.FATAL
    default_message: str = "ledger error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LedgerError):
    kind = ErrorKind.VALIDATION
    default_message = "validation error"


class ConflictError(LedgerError):
    kind = ErrorKind.CONFLICT
    default_message = "conflict"


class NotFoundError(LedgerError):
    kind = ErrorKind.NOT_FOUND
    default_message = "not found"


class FatalError(LedgerError):
    kind = ErrorKind.FATAL
    default_message = "internal storage error"


class InvalidPassword(ValidationError):
    default_message = "invalid password"


class InvalidEmail(ValidationError):
    default_message = "invalid email"


class InvalidFirstName(ValidationError):
    default_message = "invalid first name"


class InvalidLastName(ValidationError):
    default_message = "invalid last name"


class InvalidCurrency(ValidationError):
    default_message = "invalid currency"


class InvalidAddress(ValidationError):
    default_message = "invalid address"


class InvalidAmount(ValidationError):
    default_message = "invalid amount"


class InvalidCredentials(ValidationError):
    default_message = "invalid password"


class InvalidToken(ValidationError):
    default_message = "invalid token"


class EmailConflict(ConflictError):
    default_message = "user with such email already exists"


class WalletCurrencyMismatch(ConflictError):
    default_message = "wallet currency mismatch"


class UserNotFound(NotFoundError):
    default_message = "user not found"


class TransactionBeginFailed(FatalError):
    default_message = "could not begin transaction"


class TransactionCommitFailed(FatalError):
    default_message = "could not commit transaction"


class RollbackFailed(FatalError):
    """Rollback after a failed write did not go through; storage may be inconsistent."""

    default_message = "could not rollback transaction"

    def __init__(self, original: BaseException | None, message: str | None = None) -> None:
        self.original = original
        super().__init__(message)

    def __str__(self) -> str:
        if self.original is None:
            return self.message
        return f"{self.message} (after: {self.original!r})"
