"""Direct ledger recording for flows that do not go through a top-up request."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.domain.common.exceptions import InsufficientBalanceError, ValidationError, WalletError
from wallet_ledger.domain.common.models import ActionOutcome
from wallet_ledger.domain.wallets.synchronizer import BalanceSynchronizer
from wallet_ledger.infrastructure.database.errors import translate_store_errors
from wallet_ledger.infrastructure.database.repositories import SqlLedgerRepository

from .calculator import CENT, BalanceCalculator, quantize_money
from .models import Direction, LedgerEntry, NewLedgerEntry, TransactionKind, TransactionStatus, to_ledger_entry
from .repository import LedgerRepository
from .validation import prepare_entry, to_amount

logger = logging.getLogger(__name__)

APPROVED = TransactionStatus.APPROVED.value


@dataclass(slots=True)
class LedgerService:
    session: AsyncSession
    calculator: BalanceCalculator
    synchronizer: BalanceSynchronizer
    ledger: LedgerRepository

    @classmethod
    def with_session(
        cls,
        session: AsyncSession,
        calculator: BalanceCalculator,
        synchronizer: BalanceSynchronizer,
    ) -> "LedgerService":
        return cls(session, calculator, synchronizer, SqlLedgerRepository(session))

    async def record_entry(self, entry: NewLedgerEntry) -> ActionOutcome:
        """Validate, insert and commit one entry; approved entries are synchronized.

        Raises ``ValidationError`` before touching the store and
        ``ConstraintViolationError`` when the store rejects the row.
        """
        transaction = await self._insert(prepare_entry(entry))
        if transaction.status != APPROVED:
            return ActionOutcome(status=transaction.status, transaction=transaction)
        return await self._synced_outcome(transaction)

    async def _insert(self, prepared: NewLedgerEntry) -> LedgerEntry:
        processed_at = datetime.now(timezone.utc) if prepared.status == APPROVED else None
        try:
            row = await self.ledger.insert_transaction(**prepared.as_row(), processed_at=processed_at)
            async with translate_store_errors():
                await self.session.commit()
        except WalletError as exc:
            await self.session.rollback()
            logger.error("Ledger entry for agent %s (%s) rejected: %s", prepared.agent_id, prepared.kind, exc)
            raise

        transaction = to_ledger_entry(row)
        logger.info(
            "Recorded %s %s of %s for agent %s (%s)",
            transaction.status,
            transaction.kind,
            transaction.amount,
            transaction.agent_id,
            transaction.reference_code,
        )
        return transaction

    async def _synced_outcome(self, transaction: LedgerEntry) -> ActionOutcome:
        result, warning = await self.synchronizer.sync_or_warn(transaction.agent_id)
        return ActionOutcome(
            status=transaction.status,
            transaction=transaction,
            balance=result.new_balance if result else None,
            synced_at=result.synced_at if result else None,
            sync_warning=warning,
        )

    async def record_commission(
        self,
        *,
        order_id: str,
        agent_id: str,
        bundle_price,
        rate,
    ) -> ActionOutcome | None:
        """Credit the commission earned on an order.

        ``rate`` is a fraction; values above 1 are read as a percentage.
        Returns ``None`` when the commission rounds below one cent.
        """
        price = to_amount(bundle_price)
        rate = to_amount(rate)
        if rate < 0 or price < 0:
            raise ValidationError(["bundle_price and rate must not be negative"])
        if rate > 1:
            rate = rate / 100

        commission = quantize_money(price * rate)
        if commission < CENT:
            logger.info("Commission for order %s below threshold (%s), not recorded", order_id, price * rate)
            return None

        return await self.record_entry(
            NewLedgerEntry(
                agent_id=agent_id,
                kind=TransactionKind.COMMISSION.value,
                amount=commission,
                description=f"Commission for order {order_id}",
                status=APPROVED,
                payment_method="auto",
            )
        )

    async def record_refund(
        self,
        *,
        agent_id: str,
        amount,
        reason: str,
        admin_id: str | None = None,
    ) -> ActionOutcome:
        return await self.record_entry(
            NewLedgerEntry(
                agent_id=agent_id,
                kind=TransactionKind.REFUND.value,
                amount=to_amount(amount),
                description=f"Refund - {reason}",
                status=APPROVED,
                admin_id=admin_id,
            )
        )

    async def record_withdrawal(
        self,
        *,
        agent_id: str,
        amount,
        description: str | None = None,
        admin_id: str | None = None,
    ) -> ActionOutcome:
        """Debit a withdrawal once the derived balance covers it.

        The check and the insert run under the synchronizer's per-agent lock,
        so withdrawals for one agent within this process cannot overdraw.
        """
        value = to_amount(amount)
        entry = prepare_entry(
            NewLedgerEntry(
                agent_id=agent_id,
                kind=TransactionKind.WITHDRAWAL_DEDUCTION.value,
                amount=value,
                description=description or f"Withdrawal - {quantize_money(value)}",
                status=APPROVED,
                admin_id=admin_id,
            )
        )
        async with self.synchronizer.agent_lock(agent_id):
            available = await self.calculator.calculate(agent_id, session=self.session)
            if value > available:
                raise InsufficientBalanceError(agent_id, available, value)
            transaction = await self._insert(entry)
        return await self._synced_outcome(transaction)

    async def record_reversal(
        self,
        *,
        agent_id: str,
        amount,
        reason: str,
        admin_id: str,
    ) -> ActionOutcome:
        return await self.record_entry(
            NewLedgerEntry(
                agent_id=agent_id,
                kind=TransactionKind.ADMIN_REVERSAL.value,
                amount=to_amount(amount),
                description=f"Admin reversal - {reason}",
                status=APPROVED,
                admin_id=admin_id,
                admin_notes=reason,
            )
        )

    async def record_adjustment(
        self,
        *,
        agent_id: str,
        delta,
        reason: str,
        admin_id: str,
    ) -> ActionOutcome:
        """Apply a signed correction; the sign of ``delta`` picks the direction."""
        value = to_amount(delta)
        if value == 0:
            raise ValidationError(["adjustment delta must not be zero"])
        direction = Direction.CREDIT.value if value > 0 else Direction.DEBIT.value

        return await self.record_entry(
            NewLedgerEntry(
                agent_id=agent_id,
                kind=TransactionKind.ADMIN_ADJUSTMENT.value,
                amount=abs(value),
                description=f"Admin adjustment ({direction}) - {reason}",
                status=APPROVED,
                direction=direction,
                admin_id=admin_id,
                admin_notes=reason,
            )
        )


__all__ = ["LedgerService"]
