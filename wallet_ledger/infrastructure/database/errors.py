"""Translate SQLAlchemy/DBAPI failures into wallet domain errors."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from wallet_ledger.domain.common.exceptions import ConstraintViolationError, TransientStoreError

# SQLSTATE class 23 codes (PostgreSQL drivers expose them as sqlstate/pgcode)
_SQLSTATE_CATEGORIES = {
    "23505": ConstraintViolationError.DUPLICATE,
    "23503": ConstraintViolationError.MISSING_REFERENCE,
    "23502": ConstraintViolationError.MISSING_FIELD,
    "23514": ConstraintViolationError.CHECK_FAILED,
}

_MESSAGE_CATEGORIES = (
    (("unique constraint", "duplicate"), ConstraintViolationError.DUPLICATE),
    (("foreign key",), ConstraintViolationError.MISSING_REFERENCE),
    (("not null", "not-null"), ConstraintViolationError.MISSING_FIELD),
    (("check constraint",), ConstraintViolationError.CHECK_FAILED),
)


def classify_integrity_error(exc: IntegrityError) -> ConstraintViolationError:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    detail = str(orig) if orig is not None else str(exc)
    if code in _SQLSTATE_CATEGORIES:
        return ConstraintViolationError(_SQLSTATE_CATEGORIES[code], detail)

    lowered = detail.lower()
    for needles, category in _MESSAGE_CATEGORIES:
        if any(needle in lowered for needle in needles):
            return ConstraintViolationError(category, detail)
    return ConstraintViolationError(ConstraintViolationError.CHECK_FAILED, detail)


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, PoolTimeoutError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


@asynccontextmanager
async def translate_store_errors() -> AsyncIterator[None]:
    """Re-raise store failures raised inside the block as domain errors."""
    try:
        yield
    except IntegrityError as exc:
        raise classify_integrity_error(exc) from exc
    except (DBAPIError, PoolTimeoutError) as exc:
        if is_transient(exc):
            raise TransientStoreError(str(exc)) from exc
        raise


__all__ = ["classify_integrity_error", "is_transient", "translate_store_errors"]
