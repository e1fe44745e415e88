# routes/webhooks.py
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.reconciliation.handler import ReconciliationHandler
from deps.gateway import get_reconciliation_handler
from services.metrics import increment_webhook_event

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])
logger = logging.getLogger("santim.webhooks")


async def _read_json(req: Request) -> tuple[bool, Any]:
    raw = await req.body()
    try:
        return True, json.loads(raw.decode("utf-8") or "null")
    except (UnicodeDecodeError, ValueError):
        return False, None


def _invalid_json(source: str) -> JSONResponse:
    logger.info("webhook_rejected source=%s reason=INVALID_JSON", source)
    increment_webhook_event(source=source, outcome="malformed")
    return JSONResponse(status_code=400, content={"ok": False, "error": "INVALID_JSON"})


@router.post("/payments")
async def payment_callback(
    req: Request,
    handler: ReconciliationHandler = Depends(get_reconciliation_handler),
):
    ok, payload = await _read_json(req)
    if not ok:
        return _invalid_json("PAYMENT")
    # store calls block (psycopg2); keep them off the event loop
    outcome = await run_in_threadpool(handler.handle_payment_callback, payload)
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.post("/payouts")
async def payout_callback(
    req: Request,
    handler: ReconciliationHandler = Depends(get_reconciliation_handler),
):
    ok, payload = await _read_json(req)
    if not ok:
        return _invalid_json("PAYOUT")
    outcome = await run_in_threadpool(handler.handle_payout_callback, payload)
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)
