# routes/redirects.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter

logger = logging.getLogger("santim.payments")
router = APIRouter(prefix="/payment", tags=["redirects"])

# Browser landing pages only. The customer can close the tab before landing here,
# so none of these routes touch transaction state; webhooks do.


def _landing(outcome: str, transaction_id: Optional[str]) -> dict:
    logger.info("payment landing outcome=%s transaction_id=%s", outcome, transaction_id)
    return {"ok": True, "outcome": outcome, "transaction_id": transaction_id}


@router.get("/success")
def payment_success(transactionId: Optional[str] = None):
    return _landing("success", transactionId)


@router.get("/failed")
def payment_failed(transactionId: Optional[str] = None):
    return _landing("failed", transactionId)


@router.get("/canceled")
def payment_canceled(transactionId: Optional[str] = None):
    return _landing("canceled", transactionId)
