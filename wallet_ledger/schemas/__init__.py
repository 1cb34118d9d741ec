"""Pydantic schemas used by the admin API."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class LedgerEntryResponse(BaseModel):
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

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    agent_id: str
    balance: Decimal
    transaction_count: int
    totals: dict[str, Decimal] = Field(default_factory=dict)
    flagged_entry_ids: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class BatchBalanceResponse(BaseModel):
    balances: dict[str, Decimal] = Field(default_factory=dict)
    failures: dict[str, str] = Field(default_factory=dict)
    used_fallback: bool = False

    model_config = ConfigDict(from_attributes=True)


class RecentTransactionsResponse(BaseModel):
    transactions: list[LedgerEntryResponse] = Field(default_factory=list)
    balances: BatchBalanceResponse


class TopupCreateRequest(BaseModel):
    agent_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    notes: Optional[str] = None


class TopupRequestResponse(BaseModel):
    id: str
    agent_id: str
    amount: Decimal
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TopupListResponse(BaseModel):
    requests: list[TopupRequestResponse] = Field(default_factory=list)


class AdminActionRequest(BaseModel):
    admin_id: str = Field(..., min_length=1)
    notes: Optional[str] = None


class ActionOutcomeResponse(BaseModel):
    status: str
    request: Optional[TopupRequestResponse] = None
    transaction: Optional[LedgerEntryResponse] = None
    balance: Optional[Decimal] = None
    synced_at: Optional[datetime] = None
    sync_warning: Optional[str] = None


class TransactionCreateRequest(BaseModel):
    agent_id: str
    kind: str
    amount: Decimal
    description: str
    status: str = "pending"
    direction: Optional[str] = None
    payment_method: Optional[str] = None
    admin_notes: Optional[str] = None
    admin_id: Optional[str] = None


class TransactionStatusUpdate(BaseModel):
    status: str
    admin_id: str = Field(..., min_length=1)
    notes: Optional[str] = None


class SyncResponse(BaseModel):
    agent_id: str
    old_balance: Decimal
    new_balance: Decimal
    transaction_count: int
    attempts: int
    synced_at: datetime
    changed: bool

    model_config = ConfigDict(from_attributes=True)


class BulkSyncResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    total_difference: Decimal
    errors: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class IntegrityResponse(BaseModel):
    agent_id: str
    is_valid: bool
    cached_balance: Decimal
    calculated_balance: Decimal
    difference: Decimal
    transaction_count: int
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class WalletSummaryResponse(BaseModel):
    agent_id: str
    approved_balance: Decimal
    pending_amount: Decimal
    pending_count: int
    cached_balance: Decimal
    synced_at: Optional[datetime] = None
    is_stale: bool
    display_message: str

    model_config = ConfigDict(from_attributes=True)


class DiscrepancyResponse(BaseModel):
    agent_id: str
    agent_name: Optional[str] = None
    cached_balance: Decimal
    calculated_balance: Decimal
    difference: Decimal

    model_config = ConfigDict(from_attributes=True)


class DiscrepancyListResponse(BaseModel):
    discrepancies: list[DiscrepancyResponse] = Field(default_factory=list)
