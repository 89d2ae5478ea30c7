"""Exchange error classes.

Every failure raised by the exchange core is an ExchangeError carrying an
ErrorKind and a human-readable reason. No error is ever raised after pool
state has been mutated.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Categories of exchange failures."""

    INVALID_INPUT = "invalid_input"
    ALREADY_SEEDED = "already_seeded"
    NOT_SEEDED = "not_seeded"
    INSUFFICIENT_ALLOWANCE = "insufficient_allowance"
    INSUFFICIENT_SHARES = "insufficient_shares"
    INSUFFICIENT_RESERVES = "insufficient_reserves"
    DIVISION_BY_ZERO = "division_by_zero"
    TRANSFER_FAILED = "transfer_failed"
    RECONCILIATION_REQUIRED = "reconciliation_required"
    CUSTODY_MISMATCH = "custody_mismatch"
    REENTRANT_CALL = "reentrant_call"


class ExchangeError(Exception):
    """Base error for exchange operations.

    Attributes:
        kind: The category of failure
        reason: Human-readable explanation
    """

    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.reason}"


class InvalidInputError(ExchangeError):
    """Zero or otherwise out-of-domain amount or holder."""

    kind = ErrorKind.INVALID_INPUT


class Uint256OverflowError(InvalidInputError):
    """Value is negative or exceeds 2^256-1."""


class AlreadySeededError(ExchangeError):
    """Seeding attempted on a pool that already has shares outstanding."""

    kind = ErrorKind.ALREADY_SEEDED


class NotSeededError(ExchangeError):
    """Operation requires a seeded pool."""

    kind = ErrorKind.NOT_SEEDED


class InsufficientAllowanceError(ExchangeError):
    """Caller has not authorized the pool to pull enough quote asset."""

    kind = ErrorKind.INSUFFICIENT_ALLOWANCE


class InsufficientSharesError(ExchangeError):
    """Holder owns (or is allowed to move) fewer shares than requested."""

    kind = ErrorKind.INSUFFICIENT_SHARES


class InsufficientReservesError(ExchangeError):
    """Operation would drive a reserve below zero."""

    kind = ErrorKind.INSUFFICIENT_RESERVES


class DivisionByZeroError(ExchangeError):
    """Degenerate reserve state reached a zero divisor."""

    kind = ErrorKind.DIVISION_BY_ZERO


class TransferFailedError(ExchangeError):
    """An external asset collaborator reported failure."""

    kind = ErrorKind.TRANSFER_FAILED


class ReconciliationError(TransferFailedError):
    """A transfer failed after others completed and could not be undone.

    Pool state is left untouched, so reserves no longer mirror custody until
    the caller reconciles the listed transfers.

    Attributes:
        completed: Human-readable descriptions of the transfers that went through
    """

    kind = ErrorKind.RECONCILIATION_REQUIRED

    def __init__(self, reason: str, completed: list[str] | None = None) -> None:
        super().__init__(reason)
        self.completed = list(completed or [])


class CustodyMismatchError(ExchangeError):
    """Recorded reserves differ from the balances custodied by the ledgers."""

    kind = ErrorKind.CUSTODY_MISMATCH


class ReentrantCallError(ExchangeError):
    """An operation was started from inside another operation."""

    kind = ErrorKind.REENTRANT_CALL
