"""Wallet ledger and balance reconciliation service."""

__version__ = "0.1.0"
