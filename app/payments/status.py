# app/payments/status.py
from __future__ import annotations

from typing import Any, Optional

from app.santimpay.client import SantimPayClient
from app.santimpay.retry import RetryPolicy


class StatusPoller:
    """
    Caller-triggered status confirmation. Returns the processor's answer verbatim and
    never touches the transaction store; only webhooks move a record's status.
    """

    def __init__(self, client: SantimPayClient, retry_policy: Optional[RetryPolicy] = None):
        self.client = client
        self.retry_policy = retry_policy

    def check(self, transaction_id: str) -> Any:
        if self.retry_policy is None:
            return self.client.check_transaction_status(transaction_id)
        return self.retry_policy.call(lambda: self.client.check_transaction_status(transaction_id))
