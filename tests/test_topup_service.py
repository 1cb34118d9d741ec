"""Tests for the top-up request lifecycle."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import ProgrammingError

from wallet_ledger.db.models import TopupRequest as TopupRequestModel
from wallet_ledger.db.models import WalletTransaction
from wallet_ledger.domain.common.exceptions import (
    ConstraintViolationError,
    InvalidStateError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from wallet_ledger.domain.ledger.validation import REFERENCE_CODE_PATTERN
from wallet_ledger.domain.topups import TopupService
from wallet_ledger.infrastructure.database.repositories import SqlAgentRepository


@pytest.fixture
def topup_service(session, synchronizer):
    return TopupService.with_session(session, synchronizer)


async def _ledger_rows(session_factory, agent_id):
    async with session_factory() as session:
        result = await session.execute(
            select(WalletTransaction).where(WalletTransaction.agent_id == agent_id)
        )
        return result.scalars().all()


async def _request_row(session_factory, request_id):
    async with session_factory() as session:
        return await session.get(TopupRequestModel, request_id)


@pytest.mark.asyncio
async def test_approve_credits_exactly_the_requested_amount(
    topup_service, calculator, session_factory, scenario_agent
):
    before = await calculator.calculate(scenario_agent)
    request = await topup_service.create_request(agent_id=scenario_agent, amount="25")
    rows_before = await _ledger_rows(session_factory, scenario_agent)

    outcome = await topup_service.approve(request.id, "admin-1")

    assert before == Decimal("70")
    assert outcome.status == "approved"
    assert outcome.sync_warning is None
    assert outcome.fully_synced
    assert outcome.balance == Decimal("95")
    assert await calculator.calculate(scenario_agent) == Decimal("95")

    rows_after = await _ledger_rows(session_factory, scenario_agent)
    new_rows = [row for row in rows_after if row.id not in {row.id for row in rows_before}]
    assert len(new_rows) == 1
    entry = new_rows[0]
    assert entry.kind == "topup"
    assert entry.status == "approved"
    assert entry.amount == Decimal("25")
    assert entry.topup_request_id == request.id
    assert entry.admin_id == "admin-1"
    assert entry.payment_method == "manual"
    assert entry.processed_at is not None
    assert REFERENCE_CODE_PATTERN.match(entry.reference_code)
    assert len({row.reference_code for row in rows_after}) == len(rows_after)

    stored = await _request_row(session_factory, request.id)
    assert stored.status == "approved"
    assert stored.approved_by == "admin-1"
    assert stored.resolved_by == "admin-1"
    assert stored.approved_at is not None


@pytest.mark.asyncio
async def test_approve_refreshes_cached_balance(topup_service, session_factory, scenario_agent):
    request = await topup_service.create_request(agent_id=scenario_agent, amount=Decimal("25"))

    await topup_service.approve(request.id, "admin-1")

    async with session_factory() as session:
        agent = await SqlAgentRepository(session).get_agent(scenario_agent)
    assert agent.wallet_balance == Decimal("95")
    assert agent.balance_synced_at is not None


@pytest.mark.asyncio
async def test_approving_twice_is_rejected(topup_service, session_factory, scenario_agent):
    request = await topup_service.create_request(agent_id=scenario_agent, amount="10")
    await topup_service.approve(request.id, "admin-1")

    with pytest.raises(InvalidStateError):
        await topup_service.approve(request.id, "admin-2")

    topups = [row for row in await _ledger_rows(session_factory, scenario_agent) if row.topup_request_id]
    assert len(topups) == 1


@pytest.mark.asyncio
async def test_reject_creates_no_entry(topup_service, calculator, session_factory, scenario_agent):
    request = await topup_service.create_request(agent_id=scenario_agent, amount="25")
    rows_before = await _ledger_rows(session_factory, scenario_agent)

    outcome = await topup_service.reject(request.id, "admin-1")

    assert outcome.status == "rejected"
    assert outcome.transaction is None
    assert await calculator.calculate(scenario_agent) == Decimal("70")
    assert len(await _ledger_rows(session_factory, scenario_agent)) == len(rows_before)
    stored = await _request_row(session_factory, request.id)
    assert stored.status == "rejected"
    assert stored.resolved_by == "admin-1"
    assert stored.approved_by is None


@pytest.mark.asyncio
async def test_reject_after_approve_is_invalid(topup_service, scenario_agent):
    request = await topup_service.create_request(agent_id=scenario_agent, amount="25")
    await topup_service.approve(request.id, "admin-1")

    with pytest.raises(InvalidStateError):
        await topup_service.reject(request.id, "admin-1")


@pytest.mark.asyncio
async def test_unknown_request(topup_service):
    with pytest.raises(NotFoundError):
        await topup_service.approve("missing", "admin-1")
    with pytest.raises(NotFoundError):
        await topup_service.reject("missing", "admin-1")
    with pytest.raises(NotFoundError):
        await topup_service.delete("missing")


@pytest.mark.asyncio
async def test_delete_pending_request_fails(topup_service, session_factory, scenario_agent):
    request = await topup_service.create_request(agent_id=scenario_agent, amount="25")

    with pytest.raises(InvalidStateError):
        await topup_service.delete(request.id)
    assert await _request_row(session_factory, request.id) is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["approve", "reject"])
async def test_delete_resolved_request(topup_service, calculator, session_factory, scenario_agent, action):
    request = await topup_service.create_request(agent_id=scenario_agent, amount="25")
    await getattr(topup_service, action)(request.id, "admin-1")
    balance = await calculator.calculate(scenario_agent)

    await topup_service.delete(request.id)

    assert await _request_row(session_factory, request.id) is None
    # the ledger entry of an approved request survives its request
    assert await calculator.calculate(scenario_agent) == balance


@pytest.mark.asyncio
async def test_validation_failure_rolls_back_approval(topup_service, session_factory, scenario_agent):
    request = await topup_service.create_request(agent_id=scenario_agent, amount="25")
    rows_before = await _ledger_rows(session_factory, scenario_agent)

    with patch("wallet_ledger.domain.ledger.validation.generate_reference_code", return_value="bad code"):
        with pytest.raises(ValidationError) as exc_info:
            await topup_service.approve(request.id, "admin-1")

    assert any("reference_code" in error for error in exc_info.value.errors)
    stored = await _request_row(session_factory, request.id)
    assert stored.status == "pending"
    assert len(await _ledger_rows(session_factory, scenario_agent)) == len(rows_before)


@pytest.mark.asyncio
async def test_duplicate_reference_code_rolls_back_approval(topup_service, session_factory, scenario_agent):
    first = await topup_service.create_request(agent_id=scenario_agent, amount="10")
    second = await topup_service.create_request(agent_id=scenario_agent, amount="20")

    with patch(
        "wallet_ledger.domain.ledger.validation.generate_reference_code",
        return_value="TOPU-DUPLICAT-0000000001",
    ):
        await topup_service.approve(first.id, "admin-1")
        with pytest.raises(ConstraintViolationError) as exc_info:
            await topup_service.approve(second.id, "admin-1")

    assert exc_info.value.category == ConstraintViolationError.DUPLICATE
    assert "Duplicate transaction" in exc_info.value.message
    stored = await _request_row(session_factory, second.id)
    assert stored.status == "pending"


@pytest.mark.asyncio
async def test_request_for_unknown_agent_is_a_missing_reference(topup_service):
    with pytest.raises(ConstraintViolationError) as exc_info:
        await topup_service.create_request(agent_id="no-such-agent", amount="10")
    assert exc_info.value.category == ConstraintViolationError.MISSING_REFERENCE


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0", "-5", "1.001"])
async def test_request_amount_is_validated(topup_service, scenario_agent, amount):
    with pytest.raises(ValidationError):
        await topup_service.create_request(agent_id=scenario_agent, amount=amount)


@pytest.mark.asyncio
async def test_sync_failure_keeps_approval_and_heals_later(
    topup_service, synchronizer, calculator, session_factory, scenario_agent
):
    request = await topup_service.create_request(agent_id=scenario_agent, amount="25")

    with patch.object(
        SqlAgentRepository,
        "update_agent_cached_balance",
        AsyncMock(side_effect=TransientStoreError("database is locked")),
    ):
        outcome = await topup_service.approve(request.id, "admin-1")

    assert outcome.status == "approved"
    assert outcome.sync_warning is not None
    assert not outcome.fully_synced
    assert outcome.transaction.amount == Decimal("25")
    assert (await _request_row(session_factory, request.id)).status == "approved"
    assert await calculator.calculate(scenario_agent) == Decimal("95")

    async with session_factory() as session:
        stale = await SqlAgentRepository(session).get_agent(scenario_agent)
    assert stale.wallet_balance == Decimal("0")

    result = await synchronizer.sync(scenario_agent)
    assert result.new_balance == Decimal("95")


@pytest.mark.asyncio
async def test_store_error_during_sync_is_reported_as_warning(
    topup_service, calculator, session_factory, scenario_agent
):
    request = await topup_service.create_request(agent_id=scenario_agent, amount="25")

    with patch.object(
        SqlAgentRepository,
        "update_agent_cached_balance",
        AsyncMock(side_effect=ProgrammingError("UPDATE agents", {}, Exception("no such column"))),
    ):
        outcome = await topup_service.approve(request.id, "admin-1")

    assert outcome.status == "approved"
    assert "may be stale" in outcome.sync_warning
    assert outcome.balance is None
    assert (await _request_row(session_factory, request.id)).status == "approved"
    assert await calculator.calculate(scenario_agent) == Decimal("95")


@pytest.mark.asyncio
async def test_reject_records_notes(topup_service, session_factory, scenario_agent):
    request = await topup_service.create_request(agent_id=scenario_agent, amount="10", notes="bank slip 42")

    outcome = await topup_service.reject(request.id, "admin-1", notes="duplicate payment")

    assert outcome.record.notes == "duplicate payment"
    stored = await _request_row(session_factory, request.id)
    assert stored.notes == "duplicate payment"
    assert stored.resolved_by == "admin-1"
    assert stored.approved_by is None


@pytest.mark.asyncio
async def test_reject_without_notes_keeps_existing_notes(topup_service, session_factory, scenario_agent):
    request = await topup_service.create_request(agent_id=scenario_agent, amount="10", notes="bank slip 42")

    await topup_service.reject(request.id, "admin-1")

    assert (await _request_row(session_factory, request.id)).notes == "bank slip 42"


@pytest.mark.asyncio
async def test_list_requests_filters(topup_service, scenario_agent, make_agent):
    other = await make_agent("Other")
    pending = await topup_service.create_request(agent_id=scenario_agent, amount="5", notes="cash deposit")
    approved = await topup_service.create_request(agent_id=scenario_agent, amount="6")
    await topup_service.create_request(agent_id=other, amount="7")
    await topup_service.approve(approved.id, "admin-1")

    pending_for_agent = await topup_service.list_requests(status="pending", agent_id=scenario_agent)
    everything = await topup_service.list_requests(status="all")

    assert [item.id for item in pending_for_agent] == [pending.id]
    assert pending_for_agent[0].notes == "cash deposit"
    assert pending_for_agent[0].is_pending
    assert len(everything) == 3
