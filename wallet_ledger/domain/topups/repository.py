"""Repository interface for top-up requests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol, Sequence

from wallet_ledger.db.models import TopupRequest as TopupRequestModel


class TopupRequestRepository(Protocol):
    async def insert_topup_request(
        self,
        *,
        agent_id: str,
        amount: Decimal,
        notes: str | None = None,
    ) -> TopupRequestModel:
        ...

    async def get_topup_request(self, request_id: str) -> TopupRequestModel | None:
        ...

    async def update_topup_request_status(
        self,
        request_id: str,
        *,
        status: str,
        resolved_by: str,
        resolved_at: datetime,
        approved_by: str | None = None,
        approved_at: datetime | None = None,
        notes: str | None = None,
        expected_status: str = "pending",
    ) -> TopupRequestModel | None:
        ...

    async def delete_topup_request(self, request_id: str) -> bool:
        ...

    async def list_topup_requests(
        self,
        *,
        status: str | None = None,
        agent_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[TopupRequestModel]:
        ...
