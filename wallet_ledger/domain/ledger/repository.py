"""Repository protocol for the wallet ledger store."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol, Sequence

from wallet_ledger.db.models import WalletTransaction as WalletTransactionModel


class LedgerRepository(Protocol):
    async def insert_transaction(self, **fields) -> WalletTransactionModel:
        ...

    async def get_transaction(self, transaction_id: str) -> WalletTransactionModel | None:
        ...

    async def update_transaction_status(
        self,
        transaction_id: str,
        *,
        status: str,
        processed_at: datetime,
        admin_id: str | None,
        admin_notes: str | None,
        expected_status: str | None = None,
    ) -> WalletTransactionModel | None:
        ...

    async def query_transactions_by_agent(
        self,
        agent_id: str,
        status: str | None = None,
    ) -> Sequence[WalletTransactionModel]:
        ...

    async def query_transactions_by_agents(
        self,
        agent_ids: Iterable[str],
        status: str | None = None,
    ) -> Sequence[WalletTransactionModel]:
        ...

    async def list_recent(self, agent_ids: Iterable[str], limit: int) -> Sequence[WalletTransactionModel]:
        ...

    async def agents_with_transactions(self, status: str | None = None) -> list[str]:
        ...
