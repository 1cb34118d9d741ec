"""Process-wide logging setup."""

from __future__ import annotations

import logging
import sys

from wallet_ledger.core.config import Settings


def configure_logging(settings: Settings) -> None:
    root = logging.getLogger("wallet_ledger")
    root.setLevel(settings.logging.level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(settings.logging.format))

    # Re-configuring (tests, reload) must not stack handlers
    root.handlers = [handler]

    if settings.database.echo or settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)


__all__ = ["configure_logging"]
