from .service import TransactionStatusService

__all__ = ["TransactionStatusService"]
