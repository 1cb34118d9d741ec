"""Tests for direct ledger recording."""

import asyncio
from decimal import Decimal

import pytest

from wallet_ledger.domain.common.exceptions import InsufficientBalanceError, ValidationError
from wallet_ledger.domain.ledger import NewLedgerEntry
from wallet_ledger.domain.ledger.service import LedgerService


@pytest.fixture
def ledger_service(session, calculator, synchronizer):
    return LedgerService.with_session(session, calculator, synchronizer)


@pytest.mark.asyncio
async def test_record_pending_entry_skips_sync(ledger_service, calculator, scenario_agent):
    outcome = await ledger_service.record_entry(
        NewLedgerEntry(agent_id=scenario_agent, kind="refund", amount=Decimal("8"), description="Refund - bundle")
    )

    assert outcome.status == "pending"
    assert outcome.synced_at is None
    assert outcome.transaction.reference_code.startswith("REFU-")
    assert await calculator.calculate(scenario_agent) == Decimal("70")


@pytest.mark.asyncio
async def test_record_rejects_invalid_entry(ledger_service, scenario_agent):
    with pytest.raises(ValidationError):
        await ledger_service.record_entry(
            NewLedgerEntry(agent_id=scenario_agent, kind="admin_adjustment", amount=Decimal("8"), description="fix")
        )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "rate, expected",
    [("0.05", Decimal("1.00")), ("5", Decimal("1.00")), ("0.125", Decimal("2.50"))],
)
async def test_record_commission(ledger_service, calculator, scenario_agent, rate, expected):
    outcome = await ledger_service.record_commission(
        order_id="order-17", agent_id=scenario_agent, bundle_price="20", rate=rate
    )

    assert outcome.transaction.kind == "commission"
    assert outcome.transaction.amount == expected
    assert outcome.balance == Decimal("70") + expected


@pytest.mark.asyncio
async def test_tiny_commission_is_skipped(ledger_service, calculator, scenario_agent):
    outcome = await ledger_service.record_commission(
        order_id="order-18", agent_id=scenario_agent, bundle_price="0.10", rate="0.01"
    )

    assert outcome is None
    assert await calculator.calculate(scenario_agent) == Decimal("70")


@pytest.mark.asyncio
async def test_withdrawal_requires_spendable_balance(ledger_service, calculator, scenario_agent):
    with pytest.raises(InsufficientBalanceError) as exc_info:
        await ledger_service.record_withdrawal(agent_id=scenario_agent, amount="70.01")

    assert exc_info.value.available == Decimal("70")

    outcome = await ledger_service.record_withdrawal(agent_id=scenario_agent, amount="70")
    assert outcome.balance == 0
    assert await calculator.calculate(scenario_agent) == 0


@pytest.mark.asyncio
async def test_concurrent_withdrawals_cannot_overdraw(
    session_factory, calculator, synchronizer, scenario_agent
):
    async def withdraw():
        async with session_factory() as session:
            service = LedgerService.with_session(session, calculator, synchronizer)
            return await service.record_withdrawal(agent_id=scenario_agent, amount="50")

    outcomes = await asyncio.gather(withdraw(), withdraw(), return_exceptions=True)

    failures = [outcome for outcome in outcomes if isinstance(outcome, InsufficientBalanceError)]
    assert len(failures) == 1
    assert failures[0].available == Decimal("20")
    assert await calculator.calculate(scenario_agent) == Decimal("20")

@pytest.mark.asyncio
async def test_refund_and_reversal(ledger_service, calculator, scenario_agent):
    await ledger_service.record_refund(agent_id=scenario_agent, amount="12.50", reason="failed bundle")
    outcome = await ledger_service.record_reversal(
        agent_id=scenario_agent, amount="2.50", reason="duplicate refund", admin_id="admin-1"
    )

    assert outcome.transaction.kind == "admin_reversal"
    assert await calculator.calculate(scenario_agent) == Decimal("80")


@pytest.mark.asyncio
async def test_adjustment_sign_picks_direction(ledger_service, calculator, scenario_agent):
    debit = await ledger_service.record_adjustment(
        agent_id=scenario_agent, delta="-10", reason="overpaid commission", admin_id="admin-1"
    )
    credit = await ledger_service.record_adjustment(
        agent_id=scenario_agent, delta="4", reason="goodwill", admin_id="admin-1"
    )

    assert debit.transaction.direction == "debit"
    assert debit.transaction.amount == Decimal("10")
    assert credit.transaction.direction == "credit"
    assert await calculator.calculate(scenario_agent) == Decimal("64")


@pytest.mark.asyncio
async def test_zero_adjustment_is_invalid(ledger_service, scenario_agent):
    with pytest.raises(ValidationError):
        await ledger_service.record_adjustment(agent_id=scenario_agent, delta="0", reason="noop", admin_id="admin-1")
