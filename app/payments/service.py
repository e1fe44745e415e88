# app/payments/service.py
from __future__ import annotations

import logging
import secrets
import time
from decimal import Decimal
from typing import Any, Optional

from app.santimpay.client import SantimPayClient
from app.transactions.model import HostedPaymentDetails, MobileMoneyDetails, Transaction
from app.transactions.store import TransactionStore
from services.redaction import redact_text

logger = logging.getLogger("santim.payments")


def generate_transaction_id() -> str:
    return f"txn_{int(time.time() * 1000)}_{secrets.randbelow(1000)}"


class PaymentService:
    """
    Caller-facing money movement. The INITIATED record is written before the
    processor is called, so a record survives even when the call fails.
    """

    def __init__(self, client: SantimPayClient, store: TransactionStore, public_base_url: str):
        self.client = client
        self.store = store
        self.public_base_url = (public_base_url or "").rstrip("/")

    def _landing_url(self, outcome: str, transaction_id: str) -> str:
        return f"{self.public_base_url}/payment/{outcome}?transactionId={transaction_id}"

    def payment_notify_url(self) -> str:
        return f"{self.public_base_url}/v1/webhooks/payments"

    def payout_notify_url(self) -> str:
        return f"{self.public_base_url}/v1/webhooks/payouts"

    def initiate_hosted_payment(
        self,
        *,
        transaction_id: str,
        amount: Decimal,
        reason: str,
        phone_number: str = "",
        success_url: Optional[str] = None,
        failure_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
        notify_url: Optional[str] = None,
        third_party_id: Optional[str] = None,
    ) -> tuple[Transaction, str]:
        details = HostedPaymentDetails(
            reason=reason,
            success_url=success_url or self._landing_url("success", transaction_id),
            failure_url=failure_url or self._landing_url("failed", transaction_id),
            cancel_url=cancel_url or self._landing_url("canceled", transaction_id),
            notify_url=notify_url or self.payment_notify_url(),
            phone_number=phone_number or None,
        )
        txn = self.store.create(
            Transaction(
                transaction_id=transaction_id,
                type="PAYMENT",
                amount=amount,
                details=details,
                third_party_id=third_party_id,
            )
        )
        logger.info("payment initiated transaction_id=%s amount=%s flow=hosted", transaction_id, amount)

        url = self.client.initiate_hosted_payment(
            txn.transaction_id,
            txn.amount,
            details.reason,
            details.success_url,
            details.failure_url,
            details.notify_url,
            phone_number=phone_number,
            cancel_url=details.cancel_url,
        )
        return txn, url

    def initiate_direct_payment(
        self,
        *,
        transaction_id: str,
        amount: Decimal,
        reason: str,
        phone_number: str,
        payment_method: str,
        notify_url: Optional[str] = None,
        third_party_id: Optional[str] = None,
    ) -> tuple[Transaction, Any]:
        details = MobileMoneyDetails(
            reason=reason,
            phone_number=phone_number,
            payment_method=payment_method,
            notify_url=notify_url or self.payment_notify_url(),
            kind="DIRECT",
        )
        txn = self.store.create(
            Transaction(
                transaction_id=transaction_id,
                type="PAYMENT",
                amount=amount,
                details=details,
                third_party_id=third_party_id,
            )
        )
        logger.info(
            "payment initiated transaction_id=%s amount=%s flow=direct method=%s phone=%s",
            transaction_id,
            amount,
            payment_method,
            redact_text(phone_number),
        )

        result = self.client.direct_payment(
            txn.transaction_id,
            txn.amount,
            details.reason,
            details.notify_url,
            details.phone_number,
            details.payment_method,
        )
        return txn, result

    def initiate_payout(
        self,
        *,
        transaction_id: str,
        amount: Decimal,
        reason: str,
        phone_number: str,
        payment_method: str,
        notify_url: Optional[str] = None,
    ) -> tuple[Transaction, Any]:
        details = MobileMoneyDetails(
            reason=reason,
            phone_number=phone_number,
            payment_method=payment_method,
            notify_url=notify_url or self.payout_notify_url(),
            kind="PAYOUT",
        )
        txn = self.store.create(
            Transaction(
                transaction_id=transaction_id,
                type="PAYOUT",
                amount=amount,
                details=details,
            )
        )
        logger.info(
            "payout initiated transaction_id=%s amount=%s method=%s phone=%s",
            transaction_id,
            amount,
            payment_method,
            redact_text(phone_number),
        )

        result = self.client.send_to_customer(
            txn.transaction_id,
            txn.amount,
            details.reason,
            details.phone_number,
            details.payment_method,
            details.notify_url,
        )
        return txn, result

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self.store.get(transaction_id)
