"""Wallet domain exports"""

from .models import (
    BulkSyncResult,
    Discrepancy,
    IntegrityReport,
    SpendableCheck,
    SyncResult,
    WalletSnapshot,
    WalletSummary,
)
from .service import WalletService
from .synchronizer import BalanceSynchronizer

__all__ = [
    "BalanceSynchronizer",
    "BulkSyncResult",
    "Discrepancy",
    "IntegrityReport",
    "SpendableCheck",
    "SyncResult",
    "WalletService",
    "WalletSnapshot",
    "WalletSummary",
]
