# app/reconciliation/handler.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from app.reconciliation.ledger import Ledger, apply_ledger_effect
from app.reconciliation.notifications import (
    Notification,
    parse_payment_notification,
    parse_payout_notification,
)
from app.santimpay.errors import MalformedNotification, UnknownTransaction
from app.transactions.model import WebhookLogEntry
from app.transactions.state_machine import is_terminal, normalize_processor_status
from app.transactions.store import NotificationApplied, TransactionStore
from services.metrics import increment_webhook_event
from services.redaction import redact_text

logger = logging.getLogger("santim.webhooks")


@dataclass(frozen=True)
class ReconcileOutcome:
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)


class ReconciliationHandler:
    """
    Applies processor notifications to the transaction store.

    - malformed payloads -> 400, store untouched
    - unknown correlation key -> 404, nothing created
    - every accepted delivery is appended to webhook_log, even after a terminal state
    - ledger side effect fires only on the delivery that moved the record into SUCCESS
    """

    def __init__(self, store: TransactionStore, ledger: Ledger):
        self.store = store
        self.ledger = ledger

    def handle_payment_callback(self, payload: Any) -> ReconcileOutcome:
        return self._handle(payload, parse_payment_notification, source="PAYMENT")

    def handle_payout_callback(self, payload: Any) -> ReconcileOutcome:
        return self._handle(payload, parse_payout_notification, source="PAYOUT")

    # ------------------------------------------------------

    def _handle(self, payload: Any, parse: Callable[[Any], Notification], *, source: str) -> ReconcileOutcome:
        try:
            notification = parse(payload)
        except MalformedNotification as exc:
            logger.info("webhook_rejected source=%s reason=%s", source, exc.reason)
            increment_webhook_event(source=source, outcome="malformed")
            return ReconcileOutcome(400, {"ok": False, "error": exc.reason})

        try:
            return self._apply(notification)
        except UnknownTransaction as exc:
            logger.warning(
                "webhook_unknown_transaction source=%s %s=%s status_raw=%s",
                source,
                exc.by,
                redact_text(exc.key),
                notification.status_raw,
            )
            increment_webhook_event(source=source, outcome="unknown_transaction")
            return ReconcileOutcome(
                404,
                {"ok": False, "error": "TRANSACTION_NOT_FOUND", exc.by: notification.key},
            )
        except Exception:
            logger.exception("webhook_processing_failed source=%s key=%s", source, redact_text(notification.key))
            increment_webhook_event(source=source, outcome="error")
            return ReconcileOutcome(500, {"ok": False, "error": "Callback processing failed"})

    def _apply(self, n: Notification) -> ReconcileOutcome:
        new_status = normalize_processor_status(n.status_raw)
        entry = WebhookLogEntry(raw=n.raw, status_raw=n.status_raw, status=new_status, amount=n.amount)

        applied = self.store.apply_notification(
            n.key,
            by=n.by,
            txn_type=n.source,
            new_status=new_status,
            entry=entry,
        )
        txn = applied.transaction
        logged = txn.webhook_log[-1]

        if logged.amount_mismatch:
            logger.warning(
                "webhook_amount_mismatch transaction_id=%s recorded=%s reported=%s",
                txn.transaction_id,
                txn.amount,
                logged.amount,
            )

        body = self._ack(n, applied)

        if new_status is None:
            body.update({"ignored": True, "reason": "UNRECOGNIZED_STATUS"})
        elif not applied.transitioned and is_terminal(applied.status_before):
            body.update({"ignored": True, "reason": f"ALREADY_{applied.status_before}"})

        if applied.transitioned and is_terminal(txn.status):
            try:
                effect = apply_ledger_effect(self.ledger, txn)
            except Exception:
                # transition is committed; the effect is not re-attempted on redelivery
                logger.exception("ledger_effect_failed transaction_id=%s", txn.transaction_id)
                increment_webhook_event(source=n.source, outcome="ledger_failed")
                return ReconcileOutcome(500, {**body, "ok": False, "error": "LEDGER_FAILED"})
            body["ledger_effect"] = effect

        logger.info(
            "webhook_applied source=%s transaction_id=%s status_raw=%s status_before=%s status_after=%s transitioned=%s log_size=%s",
            n.source,
            txn.transaction_id,
            n.status_raw,
            applied.status_before,
            txn.status,
            applied.transitioned,
            len(txn.webhook_log),
        )
        increment_webhook_event(
            source=n.source,
            outcome="applied" if applied.transitioned else "ignored",
        )
        return ReconcileOutcome(200, body)

    @staticmethod
    def _ack(n: Notification, applied: NotificationApplied) -> dict[str, Any]:
        txn = applied.transaction
        ack: dict[str, Any] = {
            "ok": True,
            "status": "received",
            "transaction_id": txn.transaction_id,
            "transaction_status": txn.status,
            "applied": applied.transitioned,
            "amount_mismatch": txn.webhook_log[-1].amount_mismatch,
        }
        if n.source == "PAYMENT":
            ack["thirdPartyId"] = n.key
        return ack
