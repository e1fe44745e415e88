# app/santimpay/errors.py
from __future__ import annotations

from typing import Any, Optional


class GatewayError(Exception):
    """Base for every error raised by the SantimPay integration."""


class SigningError(GatewayError):
    """Token could not be minted (bad key or payload). Not retryable."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TransportError(GatewayError):
    """No response from the processor (network failure, timeout). Retryable with backoff."""

    def __init__(self, operation: str, cause: BaseException):
        super().__init__(f"{operation} transport error: {type(cause).__name__}: {cause}")
        self.operation = operation
        self.cause = cause


class ProcessorRejection(GatewayError):
    """
    Processor answered, but not with success.
    `body` is the processor's own error payload when it sent one.
    """

    def __init__(
        self,
        operation: str,
        *,
        status_code: int,
        body: Optional[Any] = None,
        message: Optional[str] = None,
    ):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        self.message = message or _message_from_body(body) or f"{operation} failed"
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        # transient / throttling / gateway issues; caller decides whether to act on it
        return self.status_code in (408, 425, 429, 500, 502, 503, 504)


class DuplicateTransaction(GatewayError):
    def __init__(self, transaction_id: str):
        super().__init__(f"transaction already exists: {transaction_id}")
        self.transaction_id = transaction_id


class DuplicateThirdPartyId(GatewayError):
    """transaction_id is new, but another payment already correlates on this processor id."""

    def __init__(self, third_party_id: str):
        super().__init__(f"third_party_id already in use: {third_party_id}")
        self.third_party_id = third_party_id


class UnknownTransaction(GatewayError):
    def __init__(self, key: str, *, by: str):
        super().__init__(f"no transaction with {by}={key}")
        self.key = key
        self.by = by


class MalformedNotification(GatewayError):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def _message_from_body(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    return None
