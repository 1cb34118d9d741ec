"""Review of pending ledger entries other than top-up requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.domain.common.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
    WalletError,
)
from wallet_ledger.domain.common.models import ActionOutcome
from wallet_ledger.domain.ledger.models import TERMINAL_STATUSES, TransactionStatus, to_ledger_entry
from wallet_ledger.domain.ledger.repository import LedgerRepository
from wallet_ledger.domain.wallets.synchronizer import BalanceSynchronizer
from wallet_ledger.infrastructure.database.errors import translate_store_errors
from wallet_ledger.infrastructure.database.repositories import SqlLedgerRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TransactionStatusService:
    session: AsyncSession
    synchronizer: BalanceSynchronizer
    ledger: LedgerRepository

    @classmethod
    def with_session(cls, session: AsyncSession, synchronizer: BalanceSynchronizer) -> "TransactionStatusService":
        return cls(session, synchronizer, SqlLedgerRepository(session))

    async def update_status(
        self,
        transaction_id: str,
        new_status: str,
        admin_id: str,
        notes: str | None = None,
    ) -> ActionOutcome:
        new_status = getattr(new_status, "value", new_status)
        if new_status not in TERMINAL_STATUSES:
            raise ValidationError([f'Invalid status: "{new_status}". Use approved or rejected'])

        current = await self.ledger.get_transaction(transaction_id)
        if current is None:
            raise NotFoundError("Transaction", transaction_id)
        if current.status != TransactionStatus.PENDING.value:
            raise InvalidStateError(f"Transaction {transaction_id} is already {current.status}")

        try:
            row = await self.ledger.update_transaction_status(
                transaction_id,
                status=new_status,
                processed_at=datetime.now(timezone.utc),
                admin_id=admin_id,
                admin_notes=notes if notes else current.admin_notes,
                expected_status=TransactionStatus.PENDING.value,
            )
            if row is None:
                raise InvalidStateError(f"Transaction {transaction_id} was processed by another admin")
            async with translate_store_errors():
                await self.session.commit()
        except WalletError:
            await self.session.rollback()
            raise

        transaction = to_ledger_entry(row)
        logger.info(
            "Transaction %s (%s, agent %s) %s by %s",
            transaction_id,
            transaction.kind,
            transaction.agent_id,
            new_status,
            admin_id,
        )

        if new_status != TransactionStatus.APPROVED.value:
            return ActionOutcome(status=new_status, transaction=transaction)

        result, warning = await self.synchronizer.sync_or_warn(transaction.agent_id)
        return ActionOutcome(
            status=new_status,
            transaction=transaction,
            balance=result.new_balance if result else None,
            synced_at=result.synced_at if result else None,
            sync_warning=warning,
        )
