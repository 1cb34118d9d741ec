"""Ledger entry validation and reference code generation."""

from __future__ import annotations

import re
import secrets
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from wallet_ledger.domain.common.exceptions import ValidationError

from .models import (
    DIRECTIONS,
    PAYMENT_METHODS,
    TRANSACTION_KINDS,
    TRANSACTION_STATUSES,
    NewLedgerEntry,
    TransactionKind,
)

REFERENCE_CODE_PATTERN = re.compile(r"^[A-Z0-9]{1,8}-[A-Z0-9]{1,8}-[A-Z0-9]{6,24}$")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def generate_reference_code(kind: str, agent_id: str) -> str:
    """Return ``<KIND>-<AGENT>-<RANDOM>``, e.g. ``TOPU-3F2A9C1B-9C04D1E2AA``."""
    type_prefix = _NON_ALNUM.sub("", kind)[:4].upper() or "TX"
    agent_prefix = _NON_ALNUM.sub("", agent_id)[:8].upper() or "AGENT"
    return f"{type_prefix}-{agent_prefix}-{secrets.token_hex(5).upper()}"


def to_amount(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # go through str so 0.1 stays 0.1
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError([f"amount is not a number: {value!r}"]) from exc


def validate_entry(entry: NewLedgerEntry) -> list[str]:
    errors: list[str] = []

    if entry.kind not in TRANSACTION_KINDS:
        errors.append(
            f'Invalid kind: "{entry.kind}". Valid kinds are: {", ".join(sorted(TRANSACTION_KINDS))}'
        )
    if entry.status not in TRANSACTION_STATUSES:
        errors.append(
            f'Invalid status: "{entry.status}". Valid statuses are: {", ".join(sorted(TRANSACTION_STATUSES))}'
        )
    if entry.payment_method and entry.payment_method not in PAYMENT_METHODS:
        errors.append(
            f'Invalid payment_method: "{entry.payment_method}". '
            f'Valid methods are: {", ".join(sorted(PAYMENT_METHODS))}'
        )
    if not (entry.agent_id or "").strip():
        errors.append("agent_id is required")
    if not (entry.description or "").strip():
        errors.append("description is required")

    amount = entry.amount
    if not isinstance(amount, Decimal) or not amount.is_finite() or amount <= 0:
        errors.append("amount must be a positive number")
    elif amount.as_tuple().exponent < -2:
        errors.append("amount must not have more than 2 decimal places")

    if entry.kind == TransactionKind.ADMIN_ADJUSTMENT.value:
        if entry.direction not in DIRECTIONS:
            errors.append("admin_adjustment requires an explicit direction (credit or debit)")
    elif entry.direction is not None:
        errors.append(f"direction is only allowed on admin_adjustment entries, got {entry.kind}")

    if entry.reference_code is not None and not REFERENCE_CODE_PATTERN.match(entry.reference_code):
        errors.append(f'Malformed reference_code: "{entry.reference_code}"')

    return errors


def _plain(value):
    return getattr(value, "value", value)


def prepare_entry(entry: NewLedgerEntry) -> NewLedgerEntry:
    """Normalize, assign a reference code and validate; raises ``ValidationError``."""
    normalized = replace(
        entry,
        kind=_plain(entry.kind),
        status=_plain(entry.status),
        direction=_plain(entry.direction),
        agent_id=(entry.agent_id or "").strip(),
        description=(entry.description or "").strip(),
        amount=to_amount(entry.amount),
        admin_notes=entry.admin_notes.strip() if entry.admin_notes else None,
        admin_id=entry.admin_id.strip() if entry.admin_id else None,
        payment_method=entry.payment_method.strip() if entry.payment_method else None,
    )
    if not normalized.reference_code and normalized.agent_id:
        normalized.reference_code = generate_reference_code(normalized.kind, normalized.agent_id)

    errors = validate_entry(normalized)
    if errors:
        raise ValidationError(errors)
    return normalized


__all__ = [
    "REFERENCE_CODE_PATTERN",
    "generate_reference_code",
    "prepare_entry",
    "to_amount",
    "validate_entry",
]
