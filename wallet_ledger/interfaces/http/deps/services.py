"""Service dependency providers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.core.container import ApplicationContainer
from wallet_ledger.domain.ledger.service import LedgerService
from wallet_ledger.domain.topups.service import TopupService
from wallet_ledger.domain.transactions.service import TransactionStatusService
from wallet_ledger.domain.wallets.service import WalletService

from .database import get_app_container, get_db_session


def get_wallet_service(container: ApplicationContainer = Depends(get_app_container)) -> WalletService:
    return container.wallets


def get_topup_service(
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_app_container),
) -> TopupService:
    return TopupService.with_session(db, container.synchronizer)


def get_transaction_status_service(
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_app_container),
) -> TransactionStatusService:
    return TransactionStatusService.with_session(db, container.synchronizer)


def get_ledger_service(
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_app_container),
) -> LedgerService:
    return LedgerService.with_session(db, container.calculator, container.synchronizer)


__all__ = [
    "get_ledger_service",
    "get_topup_service",
    "get_transaction_status_service",
    "get_wallet_service",
]
