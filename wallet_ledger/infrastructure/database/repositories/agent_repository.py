"""SQLAlchemy implementation of the agent (cached balance) repository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import select, update

from wallet_ledger.db.models import Agent
from wallet_ledger.domain.common.repository import AsyncRepository
from wallet_ledger.infrastructure.database.errors import translate_store_errors


class SqlAgentRepository(AsyncRepository[Agent]):
    """Only the cached wallet columns of an agent are written here."""

    async def get_agent(self, agent_id: str) -> Agent | None:
        stmt = select(Agent).where(Agent.id == agent_id)
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_agents(self) -> Sequence[Agent]:
        stmt = select(Agent).order_by(Agent.id)
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalars().all()

    async def create_agent(self, *, full_name: str | None = None, agent_id: str | None = None) -> Agent:
        agent = Agent(full_name=full_name, wallet_balance=Decimal("0"))
        if agent_id is not None:
            agent.id = agent_id
        async with translate_store_errors():
            return await self.add(agent)

    async def update_agent_cached_balance(
        self,
        agent_id: str,
        balance: Decimal,
        synced_at: datetime,
    ) -> Agent | None:
        stmt = (
            update(Agent)
            .where(Agent.id == agent_id)
            .values(wallet_balance=balance, balance_synced_at=synced_at)
            .execution_options(synchronize_session="fetch")
            .returning(Agent)
        )
        async with translate_store_errors():
            result = await self.session.execute(stmt)
        return result.scalars().first()
