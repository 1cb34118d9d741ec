"""SQLAlchemy implementation for top-up request repository"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import delete, desc, select, update

from wallet_ledger.db.models import TopupRequest
from wallet_ledger.domain.common.repository import AsyncRepository
from wallet_ledger.infrastructure.database.errors import translate_store_errors


class SqlTopupRepository(AsyncRepository[TopupRequest]):
    async def insert_topup_request(
        self,
        *,
        agent_id: str,
        amount: Decimal,
        notes: str | None = None,
    ) -> TopupRequest:
        request = TopupRequest(agent_id=agent_id, amount=amount, notes=notes, status="pending")
        async with translate_store_errors():
            return await self.add(request)

    async def get_topup_request(self, request_id: str) -> TopupRequest | None:
        stmt = select(TopupRequest).where(TopupRequest.id == request_id)
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalars().first()

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
    ) -> TopupRequest | None:
        values: dict = {"status": status, "resolved_by": resolved_by, "resolved_at": resolved_at}
        if approved_by is not None:
            values["approved_by"] = approved_by
            values["approved_at"] = approved_at
        if notes is not None:
            values["notes"] = notes
        stmt = (
            update(TopupRequest)
            .where(TopupRequest.id == request_id, TopupRequest.status == expected_status)
            .values(**values)
            .execution_options(synchronize_session="fetch")
            .returning(TopupRequest)
        )
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalars().first()

    async def delete_topup_request(self, request_id: str) -> bool:
        # pending requests stay for the audit trail
        stmt = delete(TopupRequest).where(
            TopupRequest.id == request_id,
            TopupRequest.status != "pending",
        )
        async with translate_store_errors():
            result = await self.session.execute(stmt.execution_options(synchronize_session="fetch"))
        return result.rowcount > 0

    async def list_topup_requests(
        self,
        *,
        status: str | None = None,
        agent_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[TopupRequest]:
        stmt = select(TopupRequest)
        if status and status != "all":
            stmt = stmt.where(TopupRequest.status == status)
        if agent_id:
            stmt = stmt.where(TopupRequest.agent_id == agent_id)
        stmt = stmt.order_by(desc(TopupRequest.created_at)).offset(offset).limit(limit)
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalars().all()
