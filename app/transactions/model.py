# app/transactions/model.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal, Optional

TransactionType = Literal["PAYMENT", "PAYOUT"]
TransactionStatus = Literal["INITIATED", "PENDING", "SUCCESS", "FAILED", "CANCELLED"]

# how an inbound notification finds its record
CorrelateBy = Literal["transaction_id", "third_party_id"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HostedPaymentDetails:
    reason: str
    success_url: str
    failure_url: str
    cancel_url: str
    notify_url: str
    phone_number: Optional[str] = None
    kind: Literal["HOSTED"] = "HOSTED"


@dataclass(frozen=True)
class MobileMoneyDetails:
    """Direct payment and payout share the same operation fields."""
    reason: str
    phone_number: str
    payment_method: str
    notify_url: str
    kind: Literal["DIRECT", "PAYOUT"] = "DIRECT"


OperationDetails = HostedPaymentDetails | MobileMoneyDetails


@dataclass(frozen=True)
class WebhookLogEntry:
    raw: dict[str, Any]
    status_raw: str
    status: Optional[str]  # normalized; None when the processor status was not recognized
    amount: Optional[Decimal]
    received_at: datetime = field(default_factory=utcnow)
    amount_mismatch: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw": self.raw,
            "status_raw": self.status_raw,
            "status": self.status,
            "amount": str(self.amount) if self.amount is not None else None,
            "received_at": self.received_at.isoformat(),
            "amount_mismatch": self.amount_mismatch,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "WebhookLogEntry":
        amount = d.get("amount")
        received_at = d.get("received_at")
        return cls(
            raw=d.get("raw") or {},
            status_raw=d.get("status_raw") or "",
            status=d.get("status"),
            amount=Decimal(str(amount)) if amount is not None else None,
            received_at=datetime.fromisoformat(received_at) if received_at else utcnow(),
            amount_mismatch=bool(d.get("amount_mismatch")),
        )


@dataclass(frozen=True)
class Transaction:
    transaction_id: str
    type: TransactionType
    amount: Decimal
    details: OperationDetails
    status: TransactionStatus = "INITIATED"
    third_party_id: Optional[str] = None
    webhook_log: tuple[WebhookLogEntry, ...] = ()
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not self.transaction_id or not self.transaction_id.strip():
            raise ValueError("transaction_id is required")
        if self.amount is None or Decimal(self.amount) <= 0:
            raise ValueError("amount must be positive")
        if self.type == "PAYOUT":
            # payout callbacks correlate on transaction_id only
            if self.third_party_id is not None:
                raise ValueError("third_party_id applies to payments only")
        elif self.third_party_id is None:
            # processor echoes our id back as thirdPartyId unless told otherwise
            object.__setattr__(self, "third_party_id", self.transaction_id)

    def correlation_key(self, by: CorrelateBy) -> Optional[str]:
        return self.transaction_id if by == "transaction_id" else self.third_party_id


def details_to_dict(details: OperationDetails) -> dict[str, Any]:
    if isinstance(details, HostedPaymentDetails):
        return {
            "kind": details.kind,
            "reason": details.reason,
            "success_url": details.success_url,
            "failure_url": details.failure_url,
            "cancel_url": details.cancel_url,
            "notify_url": details.notify_url,
            "phone_number": details.phone_number,
        }
    return {
        "kind": details.kind,
        "reason": details.reason,
        "phone_number": details.phone_number,
        "payment_method": details.payment_method,
        "notify_url": details.notify_url,
    }


def details_from_dict(d: dict[str, Any]) -> OperationDetails:
    if d.get("kind") == "HOSTED":
        return HostedPaymentDetails(
            reason=d.get("reason") or "",
            success_url=d.get("success_url") or "",
            failure_url=d.get("failure_url") or "",
            cancel_url=d.get("cancel_url") or "",
            notify_url=d.get("notify_url") or "",
            phone_number=d.get("phone_number"),
        )
    return MobileMoneyDetails(
        reason=d.get("reason") or "",
        phone_number=d.get("phone_number") or "",
        payment_method=d.get("payment_method") or "",
        notify_url=d.get("notify_url") or "",
        kind=d.get("kind") or "DIRECT",
    )
