"""Pytest fixtures for the wallet ledger tests.

Every test gets its own SQLite file so sessions opened by the services, the
calculator and the synchronizer all see the same committed data.
"""

from decimal import Decimal

import pytest

from wallet_ledger.core.config import Settings
from wallet_ledger.core.container import ApplicationContainer
from wallet_ledger.domain.ledger.calculator import BalanceCalculator
from wallet_ledger.domain.ledger.models import NewLedgerEntry
from wallet_ledger.domain.ledger.validation import prepare_entry
from wallet_ledger.domain.wallets.service import WalletService
from wallet_ledger.domain.wallets.synchronizer import BalanceSynchronizer
from wallet_ledger.infrastructure.database.repositories import SqlAgentRepository, SqlLedgerRepository
from wallet_ledger.infrastructure.database.session import build_engine, build_session_factory, create_schema


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def calculator(session_factory):
    return BalanceCalculator(session_factory, bulk_chunk_size=2, fallback_concurrency=2)


@pytest.fixture
def synchronizer(session_factory, calculator):
    return BalanceSynchronizer(session_factory, calculator, max_attempts=3, backoff_base=0)


@pytest.fixture
def wallet_service(session_factory, calculator, synchronizer):
    return WalletService(session_factory, calculator, synchronizer)


@pytest.fixture
def container(session_factory, calculator, synchronizer, wallet_service):
    return ApplicationContainer(
        settings=Settings(environment="test"),
        session_factory=session_factory,
        calculator=calculator,
        synchronizer=synchronizer,
        wallets=wallet_service,
    )


@pytest.fixture
def make_agent(session_factory):
    """Create an agent; ``cached`` seeds the denormalized wallet_balance column."""

    async def _make(full_name: str = "Test Agent", cached=None) -> str:
        async with session_factory() as session:
            agent = await SqlAgentRepository(session).create_agent(full_name=full_name)
            if cached is not None:
                agent.wallet_balance = Decimal(str(cached))
            await session.commit()
            return agent.id

    return _make


@pytest.fixture
def add_entry(session_factory):
    """Insert a validated ledger entry directly, bypassing the services."""

    async def _add(agent_id: str, kind: str, amount, status: str = "approved", direction=None) -> str:
        entry = prepare_entry(
            NewLedgerEntry(
                agent_id=agent_id,
                kind=kind,
                amount=Decimal(str(amount)),
                description=f"{kind} {amount}",
                status=status,
                direction=direction,
            )
        )
        async with session_factory() as session:
            row = await SqlLedgerRepository(session).insert_transaction(**entry.as_row())
            await session.commit()
            return row.id

    return _add


@pytest.fixture
async def scenario_agent(make_agent, add_entry):
    """topup 100 approved, deduction 30 approved, topup 50 pending: balance 70."""
    agent_id = await make_agent("Scenario Agent")
    await add_entry(agent_id, "topup", 100)
    await add_entry(agent_id, "deduction", 30)
    await add_entry(agent_id, "topup", 50, status="pending")
    return agent_id
