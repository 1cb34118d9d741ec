"""Wallet read models and reconciliation reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wallet_ledger.db.models import Agent as AgentModel
from wallet_ledger.domain.common.exceptions import NotFoundError
from wallet_ledger.domain.ledger.calculator import BalanceCalculator, CREDIT_KINDS, quantize_money
from wallet_ledger.domain.ledger.models import (
    BatchBalances,
    Direction,
    LedgerEntry,
    TransactionKind,
    TransactionStatus,
    to_ledger_entry,
)
from wallet_ledger.infrastructure.database.repositories import (
    SqlAgentRepository,
    SqlLedgerRepository,
    SqlTopupRepository,
)

from .models import (
    BulkSyncResult,
    Discrepancy,
    IntegrityReport,
    SpendableCheck,
    WalletSnapshot,
    WalletSummary,
)
from .synchronizer import BalanceSynchronizer

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
# Differences below one cent are rounding noise, not drift
TOLERANCE = Decimal("0.01")
PENDING_CREDIT_KINDS = frozenset({TransactionKind.TOPUP.value, TransactionKind.REFUND.value})


@dataclass(slots=True)
class WalletService:
    session_factory: async_sessionmaker[AsyncSession]
    calculator: BalanceCalculator
    synchronizer: BalanceSynchronizer

    async def get_snapshot(self, agent_id: str) -> WalletSnapshot:
        async with self.session_factory() as session:
            agent = await SqlAgentRepository(session).get_agent(agent_id)
        if agent is None:
            raise NotFoundError("Agent", agent_id)
        return self._to_snapshot(agent)

    async def summary(self, agent_id: str) -> WalletSummary:
        async with self.session_factory() as session:
            agent = await SqlAgentRepository(session).get_agent(agent_id)
            if agent is None:
                raise NotFoundError("Agent", agent_id)
            ledger = SqlLedgerRepository(session)
            pending_entries = await ledger.query_transactions_by_agent(
                agent_id, status=TransactionStatus.PENDING.value
            )
            pending_requests = await SqlTopupRepository(session).list_topup_requests(
                status=TransactionStatus.PENDING.value,
                agent_id=agent_id,
                limit=1000,
            )
            approved_balance = await self.calculator.calculate(agent_id, session=session)

        pending_amount = sum((Decimal(request.amount) for request in pending_requests), ZERO)
        pending_amount += sum(
            (Decimal(entry.amount) for entry in pending_entries if self._is_pending_credit(entry)),
            ZERO,
        )
        return WalletSummary(
            agent_id=agent_id,
            approved_balance=approved_balance,
            pending_amount=pending_amount,
            pending_count=len(pending_entries) + len(pending_requests),
            cached_balance=Decimal(agent.wallet_balance or 0),
            synced_at=agent.balance_synced_at,
        )

    async def check_spendable(self, agent_id: str, amount: Decimal) -> SpendableCheck:
        # Only approved money is spendable; the cached column is not consulted
        available = await self.calculator.calculate(agent_id)
        can_afford = amount > 0 and available >= amount
        shortfall = ZERO if can_afford else max(amount - available, ZERO)
        return SpendableCheck(can_afford=can_afford, available_balance=available, shortfall=shortfall)

    async def check_integrity(self, agent_id: str) -> IntegrityReport:
        async with self.session_factory() as session:
            agent = await SqlAgentRepository(session).get_agent(agent_id)
            if agent is None:
                raise NotFoundError("Agent", agent_id)
            breakdown = await self.calculator.breakdown(agent_id, session=session)

        cached = Decimal(agent.wallet_balance or 0)
        report = IntegrityReport(
            agent_id=agent_id,
            cached_balance=cached,
            calculated_balance=breakdown.balance,
            transaction_count=breakdown.transaction_count,
        )

        if cached < 0:
            report.issues.append("Cached wallet balance is negative")
            report.recommendations.append("Synchronize the wallet balance from the ledger")
        if report.difference > TOLERANCE:
            report.issues.append(
                f"Balance mismatch: cached={quantize_money(cached)}, "
                f"calculated={quantize_money(breakdown.balance)}"
            )
            report.recommendations.append("Synchronize the wallet balance from the ledger")

        credits = sum((breakdown.total(kind) for kind in CREDIT_KINDS), ZERO)
        if breakdown.total(TransactionKind.WITHDRAWAL_DEDUCTION.value) > credits:
            report.issues.append("More money withdrawn than deposited (possible double spending)")
            report.recommendations.append("Review withdrawal history and ledger integrity")
        if breakdown.transaction_count == 0 and cached > 0:
            report.issues.append("Agent has a cached balance but no approved ledger entries")
            report.recommendations.append("Investigate the source of the balance or reset it by synchronizing")
        if breakdown.flagged_entry_ids:
            report.issues.append(
                f"{len(breakdown.flagged_entry_ids)} approved entries need manual review: "
                + ", ".join(breakdown.flagged_entry_ids)
            )
            report.recommendations.append("Record an explicit direction on the flagged adjustments")

        if report.issues:
            logger.warning("Wallet integrity issues for agent %s: %s", agent_id, report.issues)
        return report

    async def reconcile_all(self) -> BulkSyncResult:
        """Synchronize every agent that has ledger entries or a non-zero cached balance."""
        async with self.session_factory() as session:
            with_entries = await SqlLedgerRepository(session).agents_with_transactions(
                status=TransactionStatus.APPROVED.value
            )
            agents = await SqlAgentRepository(session).list_agents()

        with_cache = [agent.id for agent in agents if Decimal(agent.wallet_balance or 0) != ZERO]
        logger.info("Reconciling wallet balances for %d agents", len(set(with_entries) | set(with_cache)))
        return await self.synchronizer.sync_many([*with_entries, *with_cache])

    async def discrepancy_report(self, limit: int = 10) -> list[Discrepancy]:
        async with self.session_factory() as session:
            agents = await SqlAgentRepository(session).list_agents()

        balances = await self.calculator.calculate_many(agent.id for agent in agents)
        discrepancies = [
            Discrepancy(
                agent_id=agent.id,
                agent_name=agent.full_name,
                cached_balance=Decimal(agent.wallet_balance or 0),
                calculated_balance=balances[agent.id],
            )
            for agent in agents
            if agent.id not in balances.failures
        ]
        discrepancies = [item for item in discrepancies if item.difference > TOLERANCE]
        discrepancies.sort(key=lambda item: item.difference, reverse=True)
        return discrepancies[:limit]

    async def recent_transactions(
        self,
        agent_ids: Iterable[str],
        limit: int = 50,
    ) -> tuple[list[LedgerEntry], BatchBalances]:
        ids = list(dict.fromkeys(agent_ids))
        async with self.session_factory() as session:
            rows = await SqlLedgerRepository(session).list_recent(ids, limit)
        balances = await self.calculator.calculate_many(ids)
        return [to_ledger_entry(row) for row in rows], balances

    @staticmethod
    def _is_pending_credit(entry) -> bool:
        if entry.kind in PENDING_CREDIT_KINDS:
            return True
        return entry.kind == TransactionKind.ADMIN_ADJUSTMENT.value and entry.direction == Direction.CREDIT.value

    @staticmethod
    def _to_snapshot(model: AgentModel) -> WalletSnapshot:
        return WalletSnapshot(
            agent_id=model.id,
            cached_balance=Decimal(model.wallet_balance or 0),
            synced_at=model.balance_synced_at,
        )


__all__ = ["WalletService"]
