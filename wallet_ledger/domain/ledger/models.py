"""Domain models for ledger entries and derived balances."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class TransactionKind(str, Enum):
    TOPUP = "topup"
    DEDUCTION = "deduction"
    REFUND = "refund"
    COMMISSION = "commission"
    COMMISSION_DEPOSIT = "commission_deposit"  # legacy alias of commission
    WITHDRAWAL_DEDUCTION = "withdrawal_deduction"
    ADMIN_ADJUSTMENT = "admin_adjustment"
    ADMIN_REVERSAL = "admin_reversal"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Direction(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


TRANSACTION_KINDS = frozenset(kind.value for kind in TransactionKind)
TRANSACTION_STATUSES = frozenset(status.value for status in TransactionStatus)
TERMINAL_STATUSES = frozenset({TransactionStatus.APPROVED.value, TransactionStatus.REJECTED.value})
DIRECTIONS = frozenset(direction.value for direction in Direction)
PAYMENT_METHODS = frozenset({"manual", "auto"})


@dataclass(slots=True)
class LedgerEntry:
    id: str
    agent_id: str
    amount: Decimal
    kind: str
    status: str
    description: str
    reference_code: str
    direction: Optional[str] = None
    payment_method: Optional[str] = None
    admin_notes: Optional[str] = None
    admin_id: Optional[str] = None
    topup_request_id: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


@dataclass(slots=True)
class NewLedgerEntry:
    """A ledger entry that has not been inserted yet."""

    agent_id: str
    kind: str
    amount: Decimal
    description: str
    status: str = TransactionStatus.PENDING.value
    reference_code: Optional[str] = None
    direction: Optional[str] = None
    payment_method: Optional[str] = None
    admin_notes: Optional[str] = None
    admin_id: Optional[str] = None
    topup_request_id: Optional[str] = None

    def as_row(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "kind": self.kind,
            "amount": self.amount,
            "description": self.description,
            "status": self.status,
            "reference_code": self.reference_code,
            "direction": self.direction,
            "payment_method": self.payment_method,
            "admin_notes": self.admin_notes,
            "admin_id": self.admin_id,
            "topup_request_id": self.topup_request_id,
        }


@dataclass(slots=True)
class BalanceBreakdown:
    agent_id: Optional[str]
    balance: Decimal
    transaction_count: int
    totals: dict[str, Decimal] = field(default_factory=dict)
    flagged_entry_ids: list[str] = field(default_factory=list)

    def total(self, kind: str) -> Decimal:
        return self.totals.get(kind, Decimal("0"))


@dataclass(slots=True)
class BatchBalances:
    balances: dict[str, Decimal]
    failures: dict[str, str] = field(default_factory=dict)
    used_fallback: bool = False

    def __getitem__(self, agent_id: str) -> Decimal:
        return self.balances[agent_id]

    def get(self, agent_id: str, default: Optional[Decimal] = None) -> Optional[Decimal]:
        return self.balances.get(agent_id, default)


def to_ledger_entry(model: Any) -> LedgerEntry:
    return LedgerEntry(
        id=model.id,
        agent_id=model.agent_id,
        amount=model.amount,
        kind=model.kind,
        status=model.status,
        description=model.description,
        reference_code=model.reference_code,
        direction=model.direction,
        payment_method=model.payment_method,
        admin_notes=model.admin_notes,
        admin_id=model.admin_id,
        topup_request_id=model.topup_request_id,
        created_at=model.created_at,
        processed_at=model.processed_at,
    )
