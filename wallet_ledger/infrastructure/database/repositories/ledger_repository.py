"""SQLAlchemy implementation of the wallet ledger store"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from sqlalchemy import desc, select, update

from wallet_ledger.db.models import WalletTransaction
from wallet_ledger.domain.common.repository import AsyncRepository
from wallet_ledger.infrastructure.database.errors import translate_store_errors


class SqlLedgerRepository(AsyncRepository[WalletTransaction]):
    async def insert_transaction(self, **fields) -> WalletTransaction:
        async with translate_store_errors():
            return await self.add(WalletTransaction(**fields))

    async def get_transaction(self, transaction_id: str) -> WalletTransaction | None:
        stmt = select(WalletTransaction).where(WalletTransaction.id == transaction_id)
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalars().first()

    async def update_transaction_status(
        self,
        transaction_id: str,
        *,
        status: str,
        processed_at: datetime,
        admin_id: str | None,
        admin_notes: str | None,
        expected_status: str | None = None,
    ) -> WalletTransaction | None:
        stmt = update(WalletTransaction).where(WalletTransaction.id == transaction_id)
        if expected_status is not None:
            # compare-and-set: a concurrent reviewer that got there first wins
            stmt = stmt.where(WalletTransaction.status == expected_status)
        stmt = (
            stmt.values(
                status=status,
                processed_at=processed_at,
                admin_id=admin_id,
                admin_notes=admin_notes,
            )
            .execution_options(synchronize_session="fetch")
            .returning(WalletTransaction)
        )
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalars().first()

    async def query_transactions_by_agent(
        self,
        agent_id: str,
        status: str | None = None,
    ) -> Sequence[WalletTransaction]:
        stmt = select(WalletTransaction).where(WalletTransaction.agent_id == agent_id)
        if status is not None:
            stmt = stmt.where(WalletTransaction.status == status)
        stmt = stmt.order_by(WalletTransaction.created_at, WalletTransaction.id)
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalars().all()

    async def query_transactions_by_agents(
        self,
        agent_ids: Iterable[str],
        status: str | None = None,
    ) -> Sequence[WalletTransaction]:
        ids = list(agent_ids)
        if not ids:
            return []
        stmt = select(WalletTransaction).where(WalletTransaction.agent_id.in_(ids))
        if status is not None:
            stmt = stmt.where(WalletTransaction.status == status)
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_recent(self, agent_ids: Iterable[str], limit: int) -> Sequence[WalletTransaction]:
        ids = list(agent_ids)
        if not ids:
            return []
        stmt = (
            select(WalletTransaction)
            .where(WalletTransaction.agent_id.in_(ids))
            .order_by(desc(WalletTransaction.created_at), desc(WalletTransaction.id))
            .limit(limit)
        )
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalars().all()

    async def agents_with_transactions(self, status: str | None = None) -> list[str]:
        stmt = select(WalletTransaction.agent_id).distinct()
        if status is not None:
            stmt = stmt.where(WalletTransaction.status == status)
        async with translate_store_errors():
            result = await self.session.execute(stmt.order_by(WalletTransaction.agent_id))
        return [row[0] for row in result.all()]
