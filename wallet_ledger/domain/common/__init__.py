"""Shared abstractions used across domain modules."""

from .exceptions import (
    ConstraintViolationError,
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    TransientStoreError,
    TransientSyncError,
    ValidationError,
    WalletError,
)
from .models import ActionOutcome
from .repository import AsyncRepository

__all__ = [
    "ActionOutcome",
    "AsyncRepository",
    "ConstraintViolationError",
    "InsufficientBalanceError",
    "InvalidStateError",
    "NotFoundError",
    "TransientStoreError",
    "TransientSyncError",
    "ValidationError",
    "WalletError",
]
