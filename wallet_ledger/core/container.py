"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wallet_ledger.core.config import Settings, get_settings
from wallet_ledger.domain.ledger.calculator import BalanceCalculator
from wallet_ledger.domain.wallets.service import WalletService
from wallet_ledger.domain.wallets.synchronizer import BalanceSynchronizer
from wallet_ledger.infrastructure.database.session import get_session_factory


@dataclass(slots=True)
class ApplicationContainer:
    """Process-wide singletons.

    The synchronizer must be shared: its per-agent locks only serialize
    writers that go through the same instance.
    """

    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    calculator: BalanceCalculator
    synchronizer: BalanceSynchronizer
    wallets: WalletService

    @classmethod
    def build(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> "ApplicationContainer":
        calculator = BalanceCalculator.from_settings(session_factory, settings)
        synchronizer = BalanceSynchronizer.from_settings(session_factory, calculator, settings)
        return cls(
            settings=settings,
            session_factory=session_factory,
            calculator=calculator,
            synchronizer=synchronizer,
            wallets=WalletService(session_factory, calculator, synchronizer),
        )


@lru_cache()
def get_container() -> ApplicationContainer:
    return ApplicationContainer.build(get_settings(), get_session_factory())


__all__ = ["ApplicationContainer", "get_container"]
