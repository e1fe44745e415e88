# schemas.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, model_validator

from app.transactions.model import Transaction, details_to_dict


# -------- PAYMENTS --------
class InitiatePaymentRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    transaction_id: Optional[str] = Field(default=None, min_length=1, max_length=128)
    order_id: Optional[str] = Field(default=None, max_length=128)
    description: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=32)
    third_party_id: Optional[str] = Field(default=None, min_length=1, max_length=128)
    success_url: Optional[str] = None
    failure_url: Optional[str] = None
    cancel_url: Optional[str] = None
    notify_url: Optional[str] = None

    @model_validator(mode="after")
    def _reason_source(self):
        if not (self.description or "").strip() and not (self.order_id or "").strip():
            raise ValueError("order_id or description is required")
        return self

    def reason(self) -> str:
        return (self.description or "").strip() or f"Payment for Order #{self.order_id}"


class InitiatePaymentResponse(BaseModel):
    success: bool = True
    payment_url: str
    transaction_id: str


class MobileMoneyRequest(BaseModel):
    """Direct payment and payout share one request shape."""
    amount: Decimal = Field(gt=0)
    transaction_id: Optional[str] = Field(default=None, min_length=1, max_length=128)
    reason: str = Field(min_length=1, max_length=255)
    phone_number: str = Field(min_length=6, max_length=32)
    payment_method: str = Field(min_length=1, max_length=64)
    notify_url: Optional[str] = None


class DirectPaymentRequest(MobileMoneyRequest):
    third_party_id: Optional[str] = Field(default=None, min_length=1, max_length=128)


class PayoutRequest(MobileMoneyRequest):
    pass


class GatewayResultResponse(BaseModel):
    success: bool = True
    transaction_id: str
    result: Any = None


class StatusResponse(BaseModel):
    success: bool = True
    transaction_id: str
    status: Any = None


# -------- TRANSACTIONS --------
class WebhookLogItem(BaseModel):
    received_at: datetime
    status_raw: str
    status: Optional[str] = None
    amount: Optional[str] = None
    amount_mismatch: bool = False
    raw: dict[str, Any]


class TransactionResponse(BaseModel):
    transaction_id: str
    type: str
    amount: str
    status: str
    third_party_id: Optional[str] = None
    details: dict[str, Any]
    webhook_log: List[WebhookLogItem]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_transaction(cls, txn: Transaction) -> "TransactionResponse":
        return cls(
            transaction_id=txn.transaction_id,
            type=txn.type,
            amount=str(txn.amount),
            status=txn.status,
            third_party_id=txn.third_party_id,
            details=details_to_dict(txn.details),
            webhook_log=[
                WebhookLogItem(
                    received_at=e.received_at,
                    status_raw=e.status_raw,
                    status=e.status,
                    amount=str(e.amount) if e.amount is not None else None,
                    amount_mismatch=e.amount_mismatch,
                    raw=e.raw,
                )
                for e in txn.webhook_log
            ],
            created_at=txn.created_at,
            updated_at=txn.updated_at,
        )
