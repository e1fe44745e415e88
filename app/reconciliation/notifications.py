# app/reconciliation/notifications.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from app.santimpay.errors import MalformedNotification
from app.transactions.model import CorrelateBy, TransactionType


@dataclass(frozen=True)
class Notification:
    source: TransactionType  # PAYMENT = collection callback, PAYOUT = payout callback
    key: str
    by: CorrelateBy
    status_raw: str
    amount: Optional[Decimal]
    raw: dict[str, Any]


def _unwrap_payload(payload: Any) -> Any:
    """
    Some deliveries wrap the body like {"data": {...}}.
    """
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        return payload["data"]
    return payload


def _first(payload: dict, *keys: str) -> str:
    for k in keys:
        v = payload.get(k)
        if v is not None and str(v).strip():
            return str(v).strip()
    return ""


def _amount(payload: dict, *keys: str) -> Optional[Decimal]:
    for k in keys:
        v = payload.get(k)
        if v is None or isinstance(v, bool) or str(v).strip() == "":
            continue
        try:
            amount = Decimal(str(v).strip())
        except InvalidOperation:
            raise MalformedNotification("INVALID_AMOUNT")
        # NaN / sNaN / Infinity cannot be compared with the recorded amount
        if not amount.is_finite():
            raise MalformedNotification("INVALID_AMOUNT")
        return amount
    return None


def _require_object(payload: Any) -> dict:
    obj = _unwrap_payload(payload)
    if not isinstance(obj, dict):
        raise MalformedNotification("INVALID_JSON_OBJECT")
    return obj


def parse_payment_notification(payload: Any) -> Notification:
    """Collection callback: {thirdPartyId, Status, totalAmount, ...}."""
    obj = _require_object(payload)
    key = _first(obj, "thirdPartyId", "third_party_id")
    status_raw = _first(obj, "Status", "status")

    if not key:
        raise MalformedNotification("MISSING_THIRD_PARTY_ID")
    if not status_raw:
        raise MalformedNotification("MISSING_STATUS")

    return Notification(
        source="PAYMENT",
        key=key,
        by="third_party_id",
        status_raw=status_raw,
        amount=_amount(obj, "totalAmount", "amount"),
        raw=obj,
    )


def parse_payout_notification(payload: Any) -> Notification:
    """Payout callback: {transactionId, status, amount, paymentMethod, timestamp, ...}."""
    obj = _require_object(payload)
    # clientReference is set to our transaction id on every payout request
    key = _first(obj, "transactionId", "clientReference")
    status_raw = _first(obj, "status", "Status")

    if not key:
        raise MalformedNotification("MISSING_TRANSACTION_ID")
    if not status_raw:
        raise MalformedNotification("MISSING_STATUS")

    return Notification(
        source="PAYOUT",
        key=key,
        by="transaction_id",
        status_raw=status_raw,
        amount=_amount(obj, "amount", "totalAmount"),
        raw=obj,
    )
