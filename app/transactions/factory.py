# app/transactions/factory.py
from __future__ import annotations

import logging

from settings import Settings, settings as default_settings
from app.transactions.store import InMemoryTransactionStore, TransactionStore

logger = logging.getLogger("santim")


def build_store(s: Settings | None = None) -> TransactionStore:
    s = s or default_settings
    if (s.DATABASE_URL or "").strip():
        from db import get_conn
        from app.transactions.repository import PostgresTransactionStore

        logger.info("transaction store backend=postgres")
        return PostgresTransactionStore(get_conn)

    logger.warning("transaction store backend=memory (DATABASE_URL not set); records are not durable")
    return InMemoryTransactionStore()
