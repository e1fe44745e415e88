# app/santimpay/client.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from app.santimpay import signer
from app.santimpay.config import GatewayConfig
from app.santimpay.errors import ProcessorRejection, TransportError
from app.santimpay.http import HttpClient, HttpResponse
from services.metrics import increment_gateway_call

logger = logging.getLogger("santim.gateway")

OP_INITIATE_PAYMENT = "initiate payment"
OP_DIRECT_PAYMENT = "direct payment"
OP_PAYOUT = "payout transfer"
OP_TRANSACTION_STATUS = "fetch transaction status"


class SantimPayClient:
    """
    Single-attempt client for the SantimPay gateway.

    Every call mints a fresh signed token. Errors:
      - SigningError: key/payload could not be signed (never retry)
      - TransportError: no response (timeout, connection), safe to retry with backoff
      - ProcessorRejection: non-200 answer, `.body` holds the processor's error payload
    Retrying is the caller's business (see app.santimpay.retry.RetryPolicy).
    """

    def __init__(self, config: GatewayConfig, http: Optional[HttpClient] = None):
        self.config = config
        self.http = http or HttpClient(timeout_s=config.timeout_s)

    def close(self) -> None:
        self.http.close()

    def _url(self, path: str) -> str:
        return f"{self.config.base_url}/{path.lstrip('/')}"

    # ------------------------------------------------------
    # Operations
    # ------------------------------------------------------

    def initiate_hosted_payment(
        self,
        transaction_id: str,
        amount: Decimal,
        reason: str,
        success_url: str,
        failure_url: str,
        notify_url: str,
        phone_number: str = "",
        cancel_url: str = "",
    ) -> str:
        """Returns the processor-hosted URL the customer must be redirected to."""
        token = signer.token_for_initiate_payment(
            amount=amount,
            reason=reason,
            merchant_id=self.config.merchant_id,
            private_key=self.config.private_key,
        )
        body = build_initiate_payment_body(
            transaction_id=transaction_id,
            amount=amount,
            reason=reason,
            merchant_id=self.config.merchant_id,
            signed_token=token,
            success_url=success_url,
            failure_url=failure_url,
            notify_url=notify_url,
            cancel_url=cancel_url,
            phone_number=phone_number,
        )
        data = self._post("initiate-payment", OP_INITIATE_PAYMENT, body, transaction_id)

        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise ProcessorRejection(
                OP_INITIATE_PAYMENT,
                status_code=200,
                body=data,
                message=f"{OP_INITIATE_PAYMENT} failed: response has no url",
            )
        return url

    def direct_payment(
        self,
        transaction_id: str,
        amount: Decimal,
        reason: str,
        notify_url: str,
        phone_number: str,
        payment_method: str,
    ) -> Any:
        token = signer.token_for_direct_payment_or_b2c(
            amount=amount,
            reason=reason,
            payment_method=payment_method,
            phone_number=phone_number,
            merchant_id=self.config.merchant_id,
            private_key=self.config.private_key,
        )
        body = build_direct_payment_body(
            transaction_id=transaction_id,
            amount=amount,
            reason=reason,
            merchant_id=self.config.merchant_id,
            signed_token=token,
            phone_number=phone_number,
            payment_method=payment_method,
            notify_url=notify_url,
        )
        return self._post("direct-payment", OP_DIRECT_PAYMENT, body, transaction_id)

    def send_to_customer(
        self,
        transaction_id: str,
        amount: Decimal,
        reason: str,
        phone_number: str,
        payment_method: str,
        notify_url: str,
    ) -> Any:
        """B2C payout: `id` and `clientReference` both carry our transaction id."""
        token = signer.token_for_direct_payment_or_b2c(
            amount=amount,
            reason=reason,
            payment_method=payment_method,
            phone_number=phone_number,
            merchant_id=self.config.merchant_id,
            private_key=self.config.private_key,
        )
        body = build_payout_body(
            transaction_id=transaction_id,
            amount=amount,
            reason=reason,
            merchant_id=self.config.merchant_id,
            signed_token=token,
            phone_number=phone_number,
            payment_method=payment_method,
            notify_url=notify_url,
        )
        return self._post("payout-transfer", OP_PAYOUT, body, transaction_id)

    def check_transaction_status(self, transaction_id: str) -> Any:
        token = signer.token_for_transaction_status(
            transaction_id=transaction_id,
            merchant_id=self.config.merchant_id,
            private_key=self.config.private_key,
        )
        body = {
            "id": transaction_id,
            "merchantId": self.config.merchant_id,
            "signedToken": token,
        }
        return self._post("fetch-transaction-status", OP_TRANSACTION_STATUS, body, transaction_id)

    # ------------------------------------------------------

    def _post(self, path: str, operation: str, body: dict[str, Any], transaction_id: str) -> Any:
        try:
            resp = self.http.post(self._url(path), operation=operation, json_body=body)
        except TransportError:
            increment_gateway_call(operation=operation, result="transport_error")
            raise

        logger.info(
            "santimpay call operation=%s transaction_id=%s http_status=%s",
            operation,
            transaction_id,
            resp.status_code,
        )
        if resp.status_code == 200:
            increment_gateway_call(operation=operation, result="ok")
            return resp.json

        increment_gateway_call(operation=operation, result="rejected")
        raise _rejection(operation, resp)


def _rejection(operation: str, resp: HttpResponse) -> ProcessorRejection:
    # body stays None when the processor sent no JSON -> generic "<operation> failed"
    return ProcessorRejection(operation, status_code=resp.status_code, body=resp.json)


# ----------------------------------------------------------
# Request bodies
# ----------------------------------------------------------

def build_initiate_payment_body(
    *,
    transaction_id: str,
    amount: Decimal,
    reason: str,
    merchant_id: str,
    signed_token: str,
    success_url: str,
    failure_url: str,
    notify_url: str,
    cancel_url: str = "",
    phone_number: str = "",
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "id": transaction_id,
        "amount": signer.json_number(amount),
        "reason": reason,
        "merchantId": merchant_id,
        "signedToken": signed_token,
        "successRedirectUrl": success_url,
        "failureRedirectUrl": failure_url,
        "notifyUrl": notify_url,
        "cancelRedirectUrl": cancel_url,
    }
    # processor rejects phoneNumber="" -> omit the key entirely
    if phone_number and phone_number.strip():
        body["phoneNumber"] = phone_number.strip()
    return body


def build_direct_payment_body(
    *,
    transaction_id: str,
    amount: Decimal,
    reason: str,
    merchant_id: str,
    signed_token: str,
    phone_number: str,
    payment_method: str,
    notify_url: str,
) -> dict[str, Any]:
    return {
        "id": transaction_id,
        "amount": signer.json_number(amount),
        "reason": reason,
        "merchantId": merchant_id,
        "signedToken": signed_token,
        "phoneNumber": phone_number,
        "paymentMethod": payment_method,
        "notifyUrl": notify_url,
    }


def build_payout_body(
    *,
    transaction_id: str,
    amount: Decimal,
    reason: str,
    merchant_id: str,
    signed_token: str,
    phone_number: str,
    payment_method: str,
    notify_url: str,
) -> dict[str, Any]:
    return {
        "id": transaction_id,
        "clientReference": transaction_id,
        "amount": signer.json_number(amount),
        "reason": reason,
        "merchantId": merchant_id,
        "signedToken": signed_token,
        "receiverAccountNumber": phone_number,
        "notifyUrl": notify_url,
        "paymentMethod": payment_method,
    }
