#main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.payments.service import PaymentService
from app.payments.status import StatusPoller
from app.reconciliation.handler import ReconciliationHandler
from app.reconciliation.ledger import Ledger, LoggingLedger
from app.santimpay.client import SantimPayClient
from app.santimpay.config import gateway_config, missing_config
from app.santimpay.errors import (
    DuplicateThirdPartyId,
    DuplicateTransaction,
    MalformedNotification,
    ProcessorRejection,
    SigningError,
    TransportError,
    UnknownTransaction,
)
from app.santimpay.retry import RetryPolicy
from app.transactions.factory import build_store
from app.transactions.store import TransactionStore
from middleware import RequestContextMiddleware
from routes.health import router as health_router
from routes.metrics import router as metrics_router
from routes.payments import router as payments_router
from routes.payouts import router as payouts_router
from routes.redirects import router as redirects_router
from routes.webhooks import router as webhooks_router
from services.observability import configure_logging
from settings import Settings, settings as default_settings

logger = logging.getLogger("santim")


def create_app(
    s: Settings | None = None,
    *,
    gateway_client: SantimPayClient | None = None,
    store: TransactionStore | None = None,
    ledger: Ledger | None = None,
    status_retry: RetryPolicy | None = None,
) -> FastAPI:
    s = s or default_settings
    configure_logging(s.LOG_LEVEL)

    cfg = gateway_config(s)
    missing = missing_config(cfg)
    if missing:
        # app still boots so webhooks/health work; gateway calls fail with SigningError
        logger.warning("santimpay config incomplete mode=%s missing=%s", cfg.mode, ",".join(missing))

    client = gateway_client or SantimPayClient(cfg)
    store = store or build_store(s)
    ledger = ledger or LoggingLedger()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        client.close()
        if app.state.store_backend == "postgres":
            from db import close_pool

            close_pool()

    app = FastAPI(title="SantimPay Gateway", version="1.0.0", lifespan=lifespan)

    app.state.gateway_config = cfg
    app.state.store_backend = getattr(store, "backend", "custom")
    app.state.payment_service = PaymentService(client, store, s.PUBLIC_BASE_URL)
    app.state.status_poller = StatusPoller(client, status_retry or RetryPolicy())
    app.state.reconciliation_handler = ReconciliationHandler(store, ledger)

    app.add_middleware(RequestContextMiddleware)

    # -----------------------------
    # ROUTERS
    # -----------------------------

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(payments_router)
    app.include_router(payouts_router)
    app.include_router(webhooks_router)
    app.include_router(redirects_router)

    _install_error_handlers(app)
    return app


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ProcessorRejection)
    async def processor_rejection_handler(request: Request, exc: ProcessorRejection):
        # a 2xx without the expected fields is still a bad gateway from our side
        status_code = exc.status_code if exc.status_code >= 400 else 502
        logger.warning(
            "santimpay rejected operation=%s http_status=%s message=%s",
            exc.operation,
            exc.status_code,
            exc.message,
        )
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "message": exc.message, "error": exc.body},
        )

    @app.exception_handler(TransportError)
    async def transport_error_handler(request: Request, exc: TransportError):
        return JSONResponse(
            status_code=502,
            content={"success": False, "message": f"{exc.operation} failed: processor unreachable"},
        )

    @app.exception_handler(SigningError)
    async def signing_error_handler(request: Request, exc: SigningError):
        logger.error("signing failed: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Could not sign gateway request"},
        )

    @app.exception_handler(DuplicateTransaction)
    async def duplicate_handler(request: Request, exc: DuplicateTransaction):
        return JSONResponse(
            status_code=409,
            content={"success": False, "message": "DUPLICATE_TRANSACTION", "transaction_id": exc.transaction_id},
        )

    @app.exception_handler(DuplicateThirdPartyId)
    async def duplicate_third_party_handler(request: Request, exc: DuplicateThirdPartyId):
        return JSONResponse(
            status_code=409,
            content={"success": False, "message": "DUPLICATE_THIRD_PARTY_ID", "third_party_id": exc.third_party_id},
        )

    @app.exception_handler(UnknownTransaction)
    async def unknown_handler(request: Request, exc: UnknownTransaction):
        return JSONResponse(status_code=404, content={"success": False, "message": "TRANSACTION_NOT_FOUND"})

    @app.exception_handler(MalformedNotification)
    async def malformed_handler(request: Request, exc: MalformedNotification):
        return JSONResponse(status_code=400, content={"success": False, "message": exc.reason})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


app = create_app()
