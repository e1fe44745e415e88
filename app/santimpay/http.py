# app/santimpay/http.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from app.santimpay.errors import TransportError
from services.redaction import redact_dict

logger = logging.getLogger("santim.http")


@dataclass
class HttpResponse:
    status_code: int
    json: Optional[Any]
    text: str


class HttpClient:
    def __init__(self, timeout_s: float = 20.0, transport: httpx.BaseTransport | None = None):
        # transport is injectable so tests can use httpx.MockTransport
        self._client = httpx.Client(timeout=timeout_s, transport=transport)

    def post(self, url: str, *, operation: str, json_body: dict[str, Any]) -> HttpResponse:
        logger.debug("POST %s operation=%s json=%s", url, operation, redact_dict(json_body))
        try:
            r = self._client.post(url, json=json_body, headers={"Content-Type": "application/json"})
        except httpx.HTTPError as exc:
            # covers timeouts (httpx.TimeoutException) and connection errors
            logger.warning("POST %s operation=%s transport_error=%s", url, operation, type(exc).__name__)
            raise TransportError(operation, exc) from exc
        logger.debug("POST %s operation=%s -> status=%s", url, operation, r.status_code)
        return self._wrap(r)

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _wrap(r: httpx.Response) -> HttpResponse:
        try:
            payload = r.json()
        except ValueError:
            payload = None
        return HttpResponse(status_code=r.status_code, json=payload, text=r.text)
