"""Reusable FastAPI dependencies."""

from .database import get_app_container, get_db_session
from .services import (
    get_ledger_service,
    get_topup_service,
    get_transaction_status_service,
    get_wallet_service,
)

__all__ = [
    "get_app_container",
    "get_db_session",
    "get_ledger_service",
    "get_topup_service",
    "get_transaction_status_service",
    "get_wallet_service",
]
