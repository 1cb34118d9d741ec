"""Repository protocol for the agent records holding the cached balance."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol, Sequence

from wallet_ledger.db.models import Agent as AgentModel


class AgentRepository(Protocol):
    async def get_agent(self, agent_id: str) -> AgentModel | None:
        ...

    async def list_agents(self) -> Sequence[AgentModel]:
        ...

    async def update_agent_cached_balance(
        self,
        agent_id: str,
        balance: Decimal,
        synced_at: datetime,
    ) -> AgentModel | None:
        ...
