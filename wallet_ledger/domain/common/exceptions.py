"""Wallet domain error taxonomy.

Ledger-mutating steps raise these and abort the operation. Balance
synchronization failures surface as :class:`TransientSyncError` and are
reported to callers as warnings rather than hard failures.
"""

from __future__ import annotations

from typing import Iterable


class WalletError(Exception):
    """Base class for wallet domain errors."""


class NotFoundError(WalletError):
    """Raised when a referenced request, transaction or agent does not exist."""

    def __init__(self, entity: str, identifier: str) -> None:
        super().__init__(f"{entity} not found: {identifier}")
        self.entity = entity
        self.identifier = identifier


class InvalidStateError(WalletError):
    """Raised when an operation is not permitted in the current lifecycle state."""


class InsufficientBalanceError(InvalidStateError):
    def __init__(self, agent_id: str, available, required) -> None:
        super().__init__(
            f"Insufficient balance for agent {agent_id}: available {available}, required {required}"
        )
        self.agent_id = agent_id
        self.available = available
        self.required = required


class ValidationError(WalletError):
    """Raised when a ledger entry fails business-rule checks before insertion."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "validation failed")


class ConstraintViolationError(WalletError):
    """Raised when the store rejects an insert or update."""

    DUPLICATE = "duplicate"
    MISSING_REFERENCE = "missing_reference"
    MISSING_FIELD = "missing_field"
    CHECK_FAILED = "check_failed"

    MESSAGES = {
        DUPLICATE: "Duplicate transaction detected. Please refresh and try again.",
        MISSING_REFERENCE: "Referenced agent or request not found. Please refresh the page.",
        MISSING_FIELD: "Missing required information. Please refresh and try again.",
        CHECK_FAILED: "Transaction validation failed. Please verify all details and try again.",
    }

    def __init__(self, category: str, detail: str | None = None) -> None:
        self.category = category
        self.detail = detail
        super().__init__(self.MESSAGES.get(category, self.MESSAGES[self.CHECK_FAILED]))

    @property
    def message(self) -> str:
        return str(self)


class TransientStoreError(WalletError):
    """A retryable store failure (lost connection, lock timeout)."""


class TransientSyncError(WalletError):
    """The cached balance could not be written after all retry attempts."""

    def __init__(self, agent_id: str, attempts: int, cause: BaseException | None = None) -> None:
        reason = f": {cause}" if cause is not None else ""
        super().__init__(f"Balance sync for agent {agent_id} failed after {attempts} attempts{reason}")
        self.agent_id = agent_id
        self.attempts = attempts
        self.cause = cause
