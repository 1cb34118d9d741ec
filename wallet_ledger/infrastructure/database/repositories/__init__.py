"""SQLAlchemy-backed repository implementations."""

from .agent_repository import SqlAgentRepository
from .ledger_repository import SqlLedgerRepository
from .topup_repository import SqlTopupRepository

__all__ = [
    "SqlAgentRepository",
    "SqlLedgerRepository",
    "SqlTopupRepository",
]
