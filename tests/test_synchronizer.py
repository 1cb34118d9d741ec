"""Tests for the cached balance synchronizer."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, call, patch

import pytest

from wallet_ledger.domain.common.exceptions import NotFoundError, TransientStoreError, TransientSyncError
from wallet_ledger.domain.wallets.synchronizer import BalanceSynchronizer
from wallet_ledger.infrastructure.database.repositories import SqlAgentRepository


async def _cached_balance(session_factory, agent_id):
    async with session_factory() as session:
        agent = await SqlAgentRepository(session).get_agent(agent_id)
        return Decimal(agent.wallet_balance), agent.balance_synced_at


@pytest.mark.asyncio
async def test_sync_writes_calculated_balance(synchronizer, session_factory, scenario_agent):
    result = await synchronizer.sync(scenario_agent)

    assert result.old_balance == 0
    assert result.new_balance == Decimal("70")
    assert result.changed
    assert result.attempts == 1
    cached, synced_at = await _cached_balance(session_factory, scenario_agent)
    assert cached == Decimal("70")
    assert synced_at is not None


@pytest.mark.asyncio
async def test_sync_is_idempotent(synchronizer, session_factory, scenario_agent):
    await synchronizer.sync(scenario_agent)
    second = await synchronizer.sync(scenario_agent)

    assert second.new_balance == Decimal("70")
    assert not second.changed
    cached, _ = await _cached_balance(session_factory, scenario_agent)
    assert cached == Decimal("70")


@pytest.mark.asyncio
async def test_sync_overwrites_drifted_cache(synchronizer, session_factory, make_agent, add_entry):
    agent_id = await make_agent(cached="500")
    await add_entry(agent_id, "topup", 40)

    result = await synchronizer.sync(agent_id)

    assert result.difference == Decimal("460")
    cached, _ = await _cached_balance(session_factory, agent_id)
    assert cached == Decimal("40")


@pytest.mark.asyncio
async def test_unknown_agent_is_not_retried(synchronizer):
    with patch("wallet_ledger.domain.wallets.synchronizer.asyncio.sleep", new_callable=AsyncMock) as sleep:
        with pytest.raises(NotFoundError):
            await synchronizer.sync("missing-agent")
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_retries_with_exponential_backoff(session_factory, calculator, scenario_agent):
    synchronizer = BalanceSynchronizer(session_factory, calculator, max_attempts=3, backoff_base=2.0)

    with patch.object(
        SqlAgentRepository,
        "update_agent_cached_balance",
        AsyncMock(side_effect=TransientStoreError("database is locked")),
    ), patch("wallet_ledger.domain.wallets.synchronizer.asyncio.sleep", new_callable=AsyncMock) as sleep:
        with pytest.raises(TransientSyncError) as exc_info:
            await synchronizer.sync(scenario_agent)

    assert sleep.await_args_list == [call(2.0), call(4.0)]
    assert exc_info.value.attempts == 3
    assert exc_info.value.agent_id == scenario_agent
    assert isinstance(exc_info.value.cause, TransientStoreError)


@pytest.mark.asyncio
async def test_transient_failure_then_success(synchronizer, session_factory, scenario_agent):
    original = SqlAgentRepository.update_agent_cached_balance
    failures = []

    async def flaky_update(self, agent_id, balance, synced_at):
        if not failures:
            failures.append(agent_id)
            raise TransientStoreError("connection lost")
        return await original(self, agent_id, balance, synced_at)

    with patch.object(SqlAgentRepository, "update_agent_cached_balance", flaky_update):
        result = await synchronizer.sync(scenario_agent)

    assert result.attempts == 2
    cached, _ = await _cached_balance(session_factory, scenario_agent)
    assert cached == Decimal("70")


@pytest.mark.asyncio
async def test_sync_or_warn_turns_failure_into_warning(synchronizer, scenario_agent):
    with patch.object(
        SqlAgentRepository,
        "update_agent_cached_balance",
        AsyncMock(side_effect=TransientStoreError("database is locked")),
    ):
        result, warning = await synchronizer.sync_or_warn(scenario_agent)

    assert result is None
    assert "may be stale" in warning


@pytest.mark.asyncio
async def test_concurrent_syncs_converge(synchronizer, session_factory, scenario_agent):
    results = await asyncio.gather(*(synchronizer.sync(scenario_agent) for _ in range(5)))

    assert {result.new_balance for result in results} == {Decimal("70")}
    cached, _ = await _cached_balance(session_factory, scenario_agent)
    assert cached == Decimal("70")


@pytest.mark.asyncio
async def test_sync_many_reports_failures(synchronizer, session_factory, scenario_agent, make_agent, add_entry):
    other = await make_agent("Other", cached="1")
    await add_entry(other, "refund", 9)

    result = await synchronizer.sync_many([scenario_agent, other, "missing-agent", other])

    assert result.total == 3
    assert result.succeeded == 2
    assert result.failed == 1
    assert "missing-agent" in result.errors
    assert result.total_difference == Decimal("78")
    cached, _ = await _cached_balance(session_factory, other)
    assert cached == Decimal("9")


def test_backoff_delay_doubles():
    synchronizer = BalanceSynchronizer(None, None, backoff_base=2.0)
    assert [synchronizer.backoff_delay(attempt) for attempt in (1, 2, 3)] == [2.0, 4.0, 8.0]
