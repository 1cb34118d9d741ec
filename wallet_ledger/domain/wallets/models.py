"""Domain models for wallet balances and reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(slots=True)
class WalletSnapshot:
    """The cached view of an agent wallet, as stored on the agent record."""

    agent_id: str
    cached_balance: Decimal
    synced_at: Optional[datetime]


@dataclass(slots=True)
class SyncResult:
    agent_id: str
    old_balance: Decimal
    new_balance: Decimal
    transaction_count: int
    attempts: int
    synced_at: datetime

    @property
    def changed(self) -> bool:
        return self.old_balance != self.new_balance

    @property
    def difference(self) -> Decimal:
        return abs(self.new_balance - self.old_balance)


@dataclass(slots=True)
class BulkSyncResult:
    total: int
    succeeded: int
    failed: int
    total_difference: Decimal
    results: list[SyncResult] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class WalletSummary:
    agent_id: str
    approved_balance: Decimal
    pending_amount: Decimal
    pending_count: int
    cached_balance: Decimal
    synced_at: Optional[datetime]

    @property
    def can_spend(self) -> Decimal:
        return self.approved_balance

    @property
    def is_stale(self) -> bool:
        return self.synced_at is None or self.cached_balance != self.approved_balance

    @property
    def display_message(self) -> str:
        if self.pending_amount > 0:
            return f"{self.pending_amount:.2f} pending admin approval"
        return "All transactions are processed"


@dataclass(slots=True)
class SpendableCheck:
    can_afford: bool
    available_balance: Decimal
    shortfall: Decimal


@dataclass(slots=True)
class IntegrityReport:
    agent_id: str
    cached_balance: Decimal
    calculated_balance: Decimal
    transaction_count: int
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def difference(self) -> Decimal:
        return abs(self.calculated_balance - self.cached_balance)


@dataclass(slots=True)
class Discrepancy:
    agent_id: str
    agent_name: Optional[str]
    cached_balance: Decimal
    calculated_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return abs(self.calculated_balance - self.cached_balance)
