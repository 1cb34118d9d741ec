"""Derived wallet balances.

The balance of an agent is the signed sum of its *approved* ledger entries.
Everything here computes from the ledger; the cached ``Agent.wallet_balance``
column is never read.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Iterable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wallet_ledger.core.config import Settings
from wallet_ledger.domain.common.exceptions import WalletError
from wallet_ledger.infrastructure.database.repositories.ledger_repository import SqlLedgerRepository

from .models import BalanceBreakdown, BatchBalances, Direction, TransactionKind, TransactionStatus
from .repository import LedgerRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

CREDIT_KINDS = frozenset(
    {
        TransactionKind.TOPUP.value,
        TransactionKind.REFUND.value,
        TransactionKind.COMMISSION.value,
        TransactionKind.COMMISSION_DEPOSIT.value,
    }
)
DEBIT_KINDS = frozenset(
    {
        TransactionKind.DEDUCTION.value,
        TransactionKind.WITHDRAWAL_DEDUCTION.value,
        TransactionKind.ADMIN_REVERSAL.value,
    }
)


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents. Presentation only, never applied while summing."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _amount(entry: Any) -> Decimal:
    amount = entry.amount
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def requires_review(entry: Any) -> bool:
    """Approved entries whose sign cannot be determined."""
    if entry.kind in CREDIT_KINDS or entry.kind in DEBIT_KINDS:
        return False
    if entry.kind == TransactionKind.ADMIN_ADJUSTMENT.value:
        return entry.direction not in (Direction.CREDIT.value, Direction.DEBIT.value)
    return True


def signed_amount(entry: Any) -> Decimal:
    if entry.status != TransactionStatus.APPROVED.value:
        return ZERO
    if entry.kind in CREDIT_KINDS:
        return _amount(entry)
    if entry.kind in DEBIT_KINDS:
        return -_amount(entry)
    if entry.kind == TransactionKind.ADMIN_ADJUSTMENT.value:
        if entry.direction == Direction.CREDIT.value:
            return _amount(entry)
        if entry.direction == Direction.DEBIT.value:
            return -_amount(entry)
    return ZERO


def summarize(entries: Iterable[Any], agent_id: str | None = None) -> BalanceBreakdown:
    balance = ZERO
    count = 0
    totals: dict[str, Decimal] = {}
    flagged: list[str] = []

    for entry in entries:
        if entry.status != TransactionStatus.APPROVED.value:
            continue
        count += 1
        totals[entry.kind] = totals.get(entry.kind, ZERO) + _amount(entry)
        if requires_review(entry):
            flagged.append(entry.id)
            logger.warning(
                "Ledger entry %s (%s, agent %s) has no determinable sign; excluded pending manual review",
                entry.id,
                entry.kind,
                entry.agent_id,
            )
            continue
        balance += signed_amount(entry)

    return BalanceBreakdown(
        agent_id=agent_id,
        balance=balance,
        transaction_count=count,
        totals=totals,
        flagged_entry_ids=flagged,
    )


def _chunks(items: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


@dataclass(slots=True)
class BalanceCalculator:
    session_factory: async_sessionmaker[AsyncSession]
    bulk_chunk_size: int = 500
    fallback_concurrency: int = 10
    repository_factory: Callable[[AsyncSession], LedgerRepository] = SqlLedgerRepository

    @classmethod
    def from_settings(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
    ) -> "BalanceCalculator":
        return cls(
            session_factory,
            bulk_chunk_size=settings.balance.bulk_chunk_size,
            fallback_concurrency=settings.balance.fallback_concurrency,
        )

    async def breakdown(self, agent_id: str, session: AsyncSession | None = None) -> BalanceBreakdown:
        if session is not None:
            return await self._breakdown(session, agent_id)
        async with self.session_factory() as own_session:
            return await self._breakdown(own_session, agent_id)

    async def calculate(self, agent_id: str, session: AsyncSession | None = None) -> Decimal:
        result = await self.breakdown(agent_id, session=session)
        return result.balance

    async def calculate_many(self, agent_ids: Iterable[str]) -> BatchBalances:
        ids = list(dict.fromkeys(agent_ids))
        if not ids:
            return BatchBalances(balances={})

        try:
            rows = await self._bulk_read(ids)
        except (SQLAlchemyError, WalletError) as exc:
            logger.warning(
                "Bulk balance read for %d agents failed, falling back to per-agent reads: %s",
                len(ids),
                exc,
            )
            return await self._calculate_individually(ids)

        grouped: dict[str, list[Any]] = defaultdict(list)
        for row in rows:
            grouped[row.agent_id].append(row)
        return BatchBalances(
            balances={agent_id: summarize(grouped.get(agent_id, ()), agent_id).balance for agent_id in ids}
        )

    async def _breakdown(self, session: AsyncSession, agent_id: str) -> BalanceBreakdown:
        repository = self.repository_factory(session)
        rows = await repository.query_transactions_by_agent(
            agent_id, status=TransactionStatus.APPROVED.value
        )
        return summarize(rows, agent_id)

    async def _bulk_read(self, ids: Sequence[str]) -> list[Any]:
        rows: list[Any] = []
        async with self.session_factory() as session:
            repository = self.repository_factory(session)
            for chunk in _chunks(ids, self.bulk_chunk_size):
                rows.extend(
                    await repository.query_transactions_by_agents(
                        chunk, status=TransactionStatus.APPROVED.value
                    )
                )
        return rows

    async def _calculate_individually(self, ids: Sequence[str]) -> BatchBalances:
        semaphore = asyncio.Semaphore(self.fallback_concurrency)

        async def calculate_one(agent_id: str) -> Decimal:
            async with semaphore:
                # one session per task, AsyncSession is not safe for concurrent use
                return await self.calculate(agent_id)

        results = await asyncio.gather(*(calculate_one(agent_id) for agent_id in ids), return_exceptions=True)

        balances: dict[str, Decimal] = {}
        failures: dict[str, str] = {}
        for agent_id, result in zip(ids, results):
            if isinstance(result, BaseException):
                logger.error("Balance calculation failed for agent %s: %s", agent_id, result)
                balances[agent_id] = ZERO
                failures[agent_id] = str(result) or type(result).__name__
            else:
                balances[agent_id] = result
        return BatchBalances(balances=balances, failures=failures, used_fallback=True)


__all__ = [
    "BalanceCalculator",
    "CREDIT_KINDS",
    "DEBIT_KINDS",
    "quantize_money",
    "requires_review",
    "signed_amount",
    "summarize",
]
