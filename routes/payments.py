# routes/payments.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.payments.service import PaymentService, generate_transaction_id
from app.payments.status import StatusPoller
from deps.gateway import get_payment_service, get_status_poller
from schemas import (
    DirectPaymentRequest,
    GatewayResultResponse,
    InitiatePaymentRequest,
    InitiatePaymentResponse,
    StatusResponse,
    TransactionResponse,
)

logger = logging.getLogger("santim.payments")
router = APIRouter(prefix="/v1", tags=["payments"])


@router.post("/payments/initiate", response_model=InitiatePaymentResponse)
def initiate_payment(
    body: InitiatePaymentRequest,
    service: PaymentService = Depends(get_payment_service),
):
    transaction_id = body.transaction_id or generate_transaction_id()
    txn, url = service.initiate_hosted_payment(
        transaction_id=transaction_id,
        amount=body.amount,
        reason=body.reason(),
        phone_number=body.phone_number or "",
        success_url=body.success_url,
        failure_url=body.failure_url,
        cancel_url=body.cancel_url,
        notify_url=body.notify_url,
        third_party_id=body.third_party_id,
    )
    return InitiatePaymentResponse(payment_url=url, transaction_id=txn.transaction_id)


@router.post("/payments/direct", response_model=GatewayResultResponse)
def direct_payment(
    body: DirectPaymentRequest,
    service: PaymentService = Depends(get_payment_service),
):
    transaction_id = body.transaction_id or generate_transaction_id()
    txn, result = service.initiate_direct_payment(
        transaction_id=transaction_id,
        amount=body.amount,
        reason=body.reason,
        phone_number=body.phone_number,
        payment_method=body.payment_method,
        notify_url=body.notify_url,
        third_party_id=body.third_party_id,
    )
    return GatewayResultResponse(transaction_id=txn.transaction_id, result=result)


@router.get("/payments/status/{transaction_id}", response_model=StatusResponse)
def payment_status(transaction_id: str, poller: StatusPoller = Depends(get_status_poller)):
    # processor's view only; local status moves on webhooks
    status = poller.check(transaction_id)
    return StatusResponse(transaction_id=transaction_id, status=status)


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: str, service: PaymentService = Depends(get_payment_service)):
    txn = service.get_transaction(transaction_id)
    if txn is None:
        raise HTTPException(status_code=404, detail="TRANSACTION_NOT_FOUND")
    return TransactionResponse.from_transaction(txn)
