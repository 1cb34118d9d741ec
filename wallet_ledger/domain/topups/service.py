"""Top-up request lifecycle.

``pending -> approved`` and ``pending -> rejected`` are the only transitions;
both targets are terminal. Approval produces exactly one approved ``topup``
ledger entry in the same database transaction as the status change, commits
it, and only then refreshes the cached balance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.db.models import TopupRequest as TopupRequestModel
from wallet_ledger.domain.common.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
    WalletError,
)
from wallet_ledger.domain.common.models import ActionOutcome
from wallet_ledger.domain.ledger.calculator import quantize_money
from wallet_ledger.domain.ledger.models import NewLedgerEntry, TransactionKind, TransactionStatus, to_ledger_entry
from wallet_ledger.domain.ledger.repository import LedgerRepository
from wallet_ledger.domain.ledger.validation import prepare_entry, to_amount
from wallet_ledger.domain.wallets.synchronizer import BalanceSynchronizer
from wallet_ledger.infrastructure.database.errors import translate_store_errors
from wallet_ledger.infrastructure.database.repositories import SqlLedgerRepository, SqlTopupRepository

from .models import TopupRequest
from .repository import TopupRequestRepository

logger = logging.getLogger(__name__)

PENDING = TransactionStatus.PENDING.value
APPROVED = TransactionStatus.APPROVED.value
REJECTED = TransactionStatus.REJECTED.value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class TopupService:
    session: AsyncSession
    synchronizer: BalanceSynchronizer
    requests: TopupRequestRepository
    ledger: LedgerRepository

    @classmethod
    def with_session(cls, session: AsyncSession, synchronizer: BalanceSynchronizer) -> "TopupService":
        return cls(session, synchronizer, SqlTopupRepository(session), SqlLedgerRepository(session))

    async def create_request(self, *, agent_id: str, amount, notes: str | None = None) -> TopupRequest:
        value = to_amount(amount)
        if not value.is_finite() or value <= 0:
            raise ValidationError(["amount must be a positive number"])
        if value.as_tuple().exponent < -2:
            raise ValidationError(["amount must not have more than 2 decimal places"])

        try:
            request = await self.requests.insert_topup_request(agent_id=agent_id, amount=value, notes=notes)
            async with translate_store_errors():
                await self.session.commit()
        except WalletError:
            await self.session.rollback()
            raise
        logger.info("Top-up request %s created for agent %s: %s", request.id, agent_id, value)
        return self._to_domain(request)

    async def get_request(self, request_id: str) -> TopupRequest:
        request = await self.requests.get_topup_request(request_id)
        if request is None:
            raise NotFoundError("Topup request", request_id)
        return self._to_domain(request)

    async def list_requests(
        self,
        *,
        status: str | None = None,
        agent_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[TopupRequest]:
        rows: Sequence[TopupRequestModel] = await self.requests.list_topup_requests(
            status=status, agent_id=agent_id, limit=limit, offset=offset
        )
        return [self._to_domain(row) for row in rows]

    async def approve(self, request_id: str, admin_id: str) -> ActionOutcome:
        await self._load_pending(request_id)
        now = _utcnow()

        try:
            request = await self.requests.update_topup_request_status(
                request_id,
                status=APPROVED,
                resolved_by=admin_id,
                resolved_at=now,
                approved_by=admin_id,
                approved_at=now,
            )
            if request is None:
                raise InvalidStateError(f"Topup request {request_id} was resolved by another admin")

            entry = prepare_entry(
                NewLedgerEntry(
                    agent_id=request.agent_id,
                    kind=TransactionKind.TOPUP.value,
                    amount=request.amount,
                    description=f"Admin wallet top-up - {quantize_money(Decimal(request.amount))}",
                    status=APPROVED,
                    payment_method="manual",
                    admin_notes=f"Approved by admin {admin_id}",
                    admin_id=admin_id,
                    topup_request_id=request_id,
                )
            )
            row = await self.ledger.insert_transaction(**entry.as_row(), processed_at=now)
            # durable before the synchronizer reads the ledger
            async with translate_store_errors():
                await self.session.commit()
        except WalletError as exc:
            await self.session.rollback()
            logger.error("Approval of top-up request %s aborted: %s", request_id, exc)
            raise

        record = self._to_domain(request)
        transaction = to_ledger_entry(row)
        logger.info(
            "Top-up request %s approved by %s, ledger entry %s (%s)",
            request_id,
            admin_id,
            transaction.id,
            transaction.reference_code,
        )

        result, warning = await self.synchronizer.sync_or_warn(record.agent_id)
        return ActionOutcome(
            status=APPROVED,
            record=record,
            transaction=transaction,
            balance=result.new_balance if result else None,
            synced_at=result.synced_at if result else None,
            sync_warning=warning,
        )

    async def reject(self, request_id: str, admin_id: str, notes: str | None = None) -> ActionOutcome:
        """Reject a pending request; ``notes`` replaces the stored notes when given."""
        await self._load_pending(request_id)
        try:
            request = await self.requests.update_topup_request_status(
                request_id,
                status=REJECTED,
                resolved_by=admin_id,
                resolved_at=_utcnow(),
                notes=notes,
            )
            if request is None:
                raise InvalidStateError(f"Topup request {request_id} was resolved by another admin")
            async with translate_store_errors():
                await self.session.commit()
        except WalletError:
            await self.session.rollback()
            raise

        logger.info("Top-up request %s rejected by %s", request_id, admin_id)
        return ActionOutcome(status=REJECTED, record=self._to_domain(request))

    async def delete(self, request_id: str) -> None:
        request = await self.requests.get_topup_request(request_id)
        if request is None:
            raise NotFoundError("Topup request", request_id)
        if request.status == PENDING:
            raise InvalidStateError("Pending top-up requests cannot be deleted; approve or reject it first")

        try:
            deleted = await self.requests.delete_topup_request(request_id)
            if not deleted:
                raise NotFoundError("Topup request", request_id)
            async with translate_store_errors():
                await self.session.commit()
        except WalletError:
            await self.session.rollback()
            raise
        logger.info("Top-up request %s (%s) deleted", request_id, request.status)

    async def _load_pending(self, request_id: str) -> TopupRequestModel:
        request = await self.requests.get_topup_request(request_id)
        if request is None:
            raise NotFoundError("Topup request", request_id)
        if request.status != PENDING:
            raise InvalidStateError(f"Topup request {request_id} is already {request.status}")
        return request

    @staticmethod
    def _to_domain(model: TopupRequestModel) -> TopupRequest:
        return TopupRequest(
            id=model.id,
            agent_id=model.agent_id,
            amount=model.amount,
            status=model.status,
            notes=model.notes,
            created_at=model.created_at,
            approved_at=model.approved_at,
            approved_by=model.approved_by,
            resolved_at=model.resolved_at,
            resolved_by=model.resolved_by,
        )
