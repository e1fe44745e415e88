import httpx
import pytest

from app.payments.status import StatusPoller
from app.santimpay.errors import ProcessorRejection, TransportError
from app.santimpay.retry import RetryPolicy


def test_check_without_policy_is_single_attempt(santim_client, processor):
    processor.responses["fetch-transaction-status"] = httpx.ReadTimeout("slow")
    poller = StatusPoller(santim_client)
    with pytest.raises(TransportError):
        poller.check("txn_1")
    assert len(processor.calls) == 1


def test_check_with_policy_retries_until_budget(santim_client, processor):
    processor.responses["fetch-transaction-status"] = httpx.ReadTimeout("slow")
    poller = StatusPoller(santim_client, RetryPolicy(max_attempts=3, sleep=lambda _s: None))
    with pytest.raises(TransportError):
        poller.check("txn_1")
    tokens = [body["signedToken"] for body in processor.bodies("fetch-transaction-status")]
    assert len(tokens) == 3


def test_rejection_surfaces_immediately(santim_client, processor):
    processor.responses["fetch-transaction-status"] = (404, {"message": "Transaction not found"})
    poller = StatusPoller(santim_client, RetryPolicy(max_attempts=3, sleep=lambda _s: None))
    with pytest.raises(ProcessorRejection) as exc:
        poller.check("txn_1")
    assert exc.value.message == "Transaction not found"
    assert len(processor.calls) == 1
