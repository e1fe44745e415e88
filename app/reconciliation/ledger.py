# app/reconciliation/ledger.py
from __future__ import annotations

import logging
from typing import Protocol

from app.transactions.model import Transaction

logger = logging.getLogger("santim.ledger")


class Ledger(Protocol):
    """External balance bookkeeping. Called at most once per transaction."""

    def credit(self, txn: Transaction) -> None: ...

    def debit(self, txn: Transaction) -> None: ...


class LoggingLedger:
    """Default ledger when no bookkeeping service is wired in: records the intent only."""

    def credit(self, txn: Transaction) -> None:
        logger.info("ledger credit transaction_id=%s amount=%s", txn.transaction_id, txn.amount)

    def debit(self, txn: Transaction) -> None:
        logger.info("ledger debit transaction_id=%s amount=%s", txn.transaction_id, txn.amount)


def apply_ledger_effect(ledger: Ledger, txn: Transaction) -> str | None:
    """
    Settled collections credit the ledger, settled payouts debit it.
    Returns the effect applied, None if the status carries no effect.
    """
    if txn.status != "SUCCESS":
        return None
    if txn.type == "PAYMENT":
        ledger.credit(txn)
        return "CREDIT"
    ledger.debit(txn)
    return "DEBIT"
