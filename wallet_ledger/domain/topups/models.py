"""Domain model for wallet top-up requests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(slots=True)
class TopupRequest:
    id: str
    agent_id: str
    amount: Decimal
    status: str
    notes: Optional[str]
    created_at: Optional[datetime]
    approved_at: Optional[datetime]
    approved_by: Optional[str]
    resolved_at: Optional[datetime]
    resolved_by: Optional[str]

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"
