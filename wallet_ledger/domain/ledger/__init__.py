"""Ledger domain exports"""

from .calculator import BalanceCalculator, quantize_money, signed_amount, summarize
from .models import (
    BalanceBreakdown,
    BatchBalances,
    Direction,
    LedgerEntry,
    NewLedgerEntry,
    TransactionKind,
    TransactionStatus,
)
from .validation import generate_reference_code, prepare_entry, validate_entry

__all__ = [
    "BalanceBreakdown",
    "BalanceCalculator",
    "BatchBalances",
    "Direction",
    "LedgerEntry",
    "NewLedgerEntry",
    "TransactionKind",
    "TransactionStatus",
    "generate_reference_code",
    "prepare_entry",
    "quantize_money",
    "signed_amount",
    "summarize",
    "validate_entry",
]
