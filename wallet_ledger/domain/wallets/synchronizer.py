"""Keeps ``Agent.wallet_balance`` in step with the ledger.

The cached balance is a projection: every synchronization recomputes it from
the approved ledger entries and overwrites the column. Failures are retried
with exponential backoff and, once exhausted, reported to the caller as
:class:`TransientSyncError`. The ledger change that triggered the sync is
never rolled back; a later sync heals the cache.

Writes for one agent are serialized through a per-agent lock, and the balance
is recomputed inside the lock, so within a process the last writer always
holds the freshest ledger snapshot. Across processes the column converges to
whichever writer finished last, which is itself a full recomputation.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wallet_ledger.core.config import Settings
from wallet_ledger.domain.common.exceptions import NotFoundError, TransientStoreError, TransientSyncError, WalletError
from wallet_ledger.domain.ledger.calculator import BalanceCalculator
from wallet_ledger.infrastructure.database.errors import translate_store_errors
from wallet_ledger.infrastructure.database.repositories.agent_repository import SqlAgentRepository

from .models import BulkSyncResult, SyncResult
from .repository import AgentRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BalanceSynchronizer:
    session_factory: async_sessionmaker[AsyncSession]
    calculator: BalanceCalculator
    max_attempts: int = 3
    backoff_base: float = 2.0
    bulk_chunk_size: int = 10
    repository_factory: Callable[[AsyncSession], AgentRepository] = SqlAgentRepository
    _locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = field(
        default_factory=weakref.WeakValueDictionary,
        init=False,
        repr=False,
    )

    @classmethod
    def from_settings(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        calculator: BalanceCalculator,
        settings: Settings,
    ) -> "BalanceSynchronizer":
        return cls(
            session_factory,
            calculator,
            max_attempts=settings.sync.max_attempts,
            backoff_base=settings.sync.backoff_base_seconds,
            bulk_chunk_size=settings.sync.bulk_chunk_size,
        )

    def backoff_delay(self, attempt: int) -> float:
        return self.backoff_base * 2 ** (attempt - 1)

    async def sync(self, agent_id: str) -> SyncResult:
        """Recompute and persist the cached balance of one agent.

        Raises ``NotFoundError`` for an unknown agent (not retried) and
        ``TransientSyncError`` once every attempt failed.
        """
        async with self.agent_lock(agent_id):
            last_error: TransientStoreError | None = None
            for attempt in range(1, self.max_attempts + 1):
                try:
                    return await self._sync_once(agent_id, attempt)
                except TransientStoreError as exc:
                    last_error = exc
                    if attempt == self.max_attempts:
                        break
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        "Balance sync for agent %s failed (attempt %d/%d), retrying in %.1fs: %s",
                        agent_id,
                        attempt,
                        self.max_attempts,
                        delay,
                        exc,
                    )
                    await asyncio.sleep(delay)

            logger.error(
                "Balance sync for agent %s gave up after %d attempts: %s",
                agent_id,
                self.max_attempts,
                last_error,
            )
            raise TransientSyncError(agent_id, self.max_attempts, last_error)

    async def sync_many(self, agent_ids: Iterable[str]) -> BulkSyncResult:
        ids = list(dict.fromkeys(agent_ids))
        results: list[SyncResult] = []
        errors: dict[str, str] = {}

        for start in range(0, len(ids), self.bulk_chunk_size):
            chunk = ids[start : start + self.bulk_chunk_size]
            outcomes = await asyncio.gather(*(self.sync(agent_id) for agent_id in chunk), return_exceptions=True)
            for agent_id, outcome in zip(chunk, outcomes):
                if isinstance(outcome, BaseException):
                    errors[agent_id] = str(outcome) or type(outcome).__name__
                else:
                    results.append(outcome)

        total_difference = sum((result.difference for result in results), Decimal("0"))
        logger.info(
            "Bulk balance sync finished: %d agents, %d synced, %d failed, total difference %s",
            len(ids),
            len(results),
            len(errors),
            total_difference,
        )
        return BulkSyncResult(
            total=len(ids),
            succeeded=len(results),
            failed=len(errors),
            total_difference=total_difference,
            results=results,
            errors=errors,
        )

    async def sync_or_warn(self, agent_id: str) -> tuple[SyncResult | None, str | None]:
        """Run :meth:`sync` after a committed ledger change.

        Failures are returned as a warning message instead of raised: the
        ledger change stands and the cache heals on the next sync.
        """
        try:
            return await self.sync(agent_id), None
        except (WalletError, SQLAlchemyError) as exc:
            logger.warning("Ledger change recorded but balance sync for agent %s failed: %s", agent_id, exc)
            return None, f"Action recorded, but the displayed balance may be stale: {exc}"

    def agent_lock(self, agent_id: str) -> asyncio.Lock:
        lock = self._locks.get(agent_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[agent_id] = lock
        return lock

    async def _sync_once(self, agent_id: str, attempt: int) -> SyncResult:
        async with self.session_factory() as session:
            repository = self.repository_factory(session)
            agent = await repository.get_agent(agent_id)
            if agent is None:
                raise NotFoundError("Agent", agent_id)
            old_balance = Decimal(agent.wallet_balance or 0)

            breakdown = await self.calculator.breakdown(agent_id, session=session)
            synced_at = datetime.now(timezone.utc)
            await repository.update_agent_cached_balance(agent_id, breakdown.balance, synced_at)
            async with translate_store_errors():
                await session.commit()

        if old_balance != breakdown.balance:
            logger.info(
                "Wallet balance of agent %s synchronized: %s -> %s (%d approved entries)",
                agent_id,
                old_balance,
                breakdown.balance,
                breakdown.transaction_count,
            )
        return SyncResult(
            agent_id=agent_id,
            old_balance=old_balance,
            new_balance=breakdown.balance,
            transaction_count=breakdown.transaction_count,
            attempts=attempt,
            synced_at=synced_at,
        )


__all__ = ["BalanceSynchronizer"]
