# routes/payouts.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.payments.service import PaymentService, generate_transaction_id
from deps.gateway import get_payment_service
from schemas import GatewayResultResponse, PayoutRequest

router = APIRouter(prefix="/v1", tags=["payouts"])


@router.post("/payouts", response_model=GatewayResultResponse)
def create_payout(body: PayoutRequest, service: PaymentService = Depends(get_payment_service)):
    transaction_id = body.transaction_id or generate_transaction_id()
    txn, result = service.initiate_payout(
        transaction_id=transaction_id,
        amount=body.amount,
        reason=body.reason,
        phone_number=body.phone_number,
        payment_method=body.payment_method,
        notify_url=body.notify_url,
    )
    return GatewayResultResponse(transaction_id=txn.transaction_id, result=result)
