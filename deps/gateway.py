# deps/gateway.py
from fastapi import Request

from app.payments.service import PaymentService
from app.payments.status import StatusPoller
from app.reconciliation.handler import ReconciliationHandler


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def get_status_poller(request: Request) -> StatusPoller:
    return request.app.state.status_poller


def get_reconciliation_handler(request: Request) -> ReconciliationHandler:
    return request.app.state.reconciliation_handler
