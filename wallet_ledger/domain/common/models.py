"""Result types shared by the administrative services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional


@dataclass(slots=True)
class ActionOutcome:
    """Outcome of a ledger-affecting admin action.

    ``status`` always reflects what was durably recorded. ``sync_warning`` is
    set when the action succeeded but the cached balance could not be
    refreshed, in which case the displayed balance may be stale.
    """

    status: str
    record: Any = None
    transaction: Any = None
    balance: Optional[Decimal] = None
    synced_at: Optional[datetime] = None
    sync_warning: Optional[str] = None

    @property
    def fully_synced(self) -> bool:
        return self.sync_warning is None and self.synced_at is not None
