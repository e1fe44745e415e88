# tests/conftest.py

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient

from app.reconciliation.handler import ReconciliationHandler
from app.santimpay.client import SantimPayClient
from app.santimpay.config import GatewayConfig
from app.santimpay.http import HttpClient
from app.santimpay.retry import RetryPolicy
from app.transactions.store import InMemoryTransactionStore
from main import create_app
from services import metrics
from settings import Settings


BASE_URL = "https://gateway.test/api/v1/gateway"
MERCHANT_ID = "merchant-123"
PUBLIC_BASE_URL = "https://merchant.test"
HOSTED_URL = "https://checkout.test/pay/abc123"


@dataclass
class KeyPair:
    private_pem: str
    public_pem: str


@pytest.fixture(scope="session")
def ec_keys() -> KeyPair:
    key = ec.generate_private_key(ec.SECP256R1())
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")
    return KeyPair(private_pem=private_pem, public_pem=public_pem)


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


# ---------------------------
# Fake processor (httpx.MockTransport)
# ---------------------------

class FakeProcessor:
    """
    Answers per endpoint (last path segment). A response is (status, json) or an
    exception instance to raise from the transport.
    """

    def __init__(self):
        self.calls: List[tuple[str, Dict[str, Any]]] = []
        self.responses: Dict[str, Any] = {
            "initiate-payment": (200, {"url": HOSTED_URL}),
            "direct-payment": (200, {"status": "PENDING", "message": "Payment request sent"}),
            "payout-transfer": (200, {"status": "PENDING", "message": "Payout accepted"}),
            "fetch-transaction-status": (200, {"status": "SUCCESS", "amount": 100}),
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.rsplit("/", 1)[-1]
        self.calls.append((endpoint, json.loads(request.content.decode("utf-8"))))
        answer = self.responses[endpoint]
        if isinstance(answer, Exception):
            raise answer
        status, payload = answer
        if isinstance(payload, str):
            return httpx.Response(status, text=payload)
        return httpx.Response(status, json=payload)

    def bodies(self, endpoint: str) -> List[Dict[str, Any]]:
        return [body for ep, body in self.calls if ep == endpoint]


@pytest.fixture()
def processor() -> FakeProcessor:
    return FakeProcessor()


@pytest.fixture()
def gateway_config(ec_keys: KeyPair) -> GatewayConfig:
    return GatewayConfig(merchant_id=MERCHANT_ID, private_key=ec_keys.private_pem, base_url=BASE_URL)


@pytest.fixture()
def santim_client(gateway_config: GatewayConfig, processor: FakeProcessor) -> SantimPayClient:
    http = HttpClient(timeout_s=5.0, transport=httpx.MockTransport(processor))
    client = SantimPayClient(gateway_config, http=http)
    yield client
    client.close()


# ---------------------------
# Store / ledger
# ---------------------------

@dataclass
class RecordingLedger:
    credits: List[tuple[str, Decimal]] = field(default_factory=list)
    debits: List[tuple[str, Decimal]] = field(default_factory=list)
    fail: bool = False

    def credit(self, txn) -> None:
        if self.fail:
            raise RuntimeError("ledger unavailable")
        self.credits.append((txn.transaction_id, txn.amount))

    def debit(self, txn) -> None:
        if self.fail:
            raise RuntimeError("ledger unavailable")
        self.debits.append((txn.transaction_id, txn.amount))


@pytest.fixture()
def store() -> InMemoryTransactionStore:
    return InMemoryTransactionStore()


@pytest.fixture()
def ledger() -> RecordingLedger:
    return RecordingLedger()


@pytest.fixture()
def handler(store, ledger) -> ReconciliationHandler:
    return ReconciliationHandler(store, ledger)


# ---------------------------
# App
# ---------------------------

@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL="",
        SANTIMPAY_MERCHANT_ID=MERCHANT_ID,
        SANTIMPAY_PRIVATE_KEY="",
        SANTIMPAY_SANDBOX_BASE_URL=BASE_URL,
        PUBLIC_BASE_URL=PUBLIC_BASE_URL,
    )


@pytest.fixture()
def app(test_settings, santim_client, store, ledger):
    return create_app(
        test_settings,
        gateway_client=santim_client,
        store=store,
        ledger=ledger,
        status_retry=RetryPolicy(max_attempts=3, sleep=lambda _s: None),
    )


@pytest.fixture()
def client(app) -> TestClient:
    # Needed so tests can assert 500s instead of pytest re-raising server exceptions
    return TestClient(app, raise_server_exceptions=False)
