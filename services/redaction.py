from __future__ import annotations

import re
from typing import Any


_PHONE_RE = re.compile(r"\+\d{6,15}")
_JWT_RE = re.compile(r"\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")

_SENSITIVE_KEY_MARKERS = (
    "token",
    "authorization",
    "secret",
    "signature",
    "private",
    "key",
)

_PHONE_KEYS = ("phonenumber", "phone", "receiveraccountnumber", "msisdn")


def _mask_phone(value: str) -> str:
    if len(value) <= 8:
        return value
    prefix = value[:6]
    suffix = value[-2:]
    return f"{prefix}****{suffix}"


def redact_text(value: str) -> str:
    masked = _JWT_RE.sub("[REDACTED]", value or "")

    def _phone_replace(match: re.Match) -> str:
        return _mask_phone(match.group(0))

    return _PHONE_RE.sub(_phone_replace, masked)


def _is_sensitive_key(key: str) -> bool:
    key_l = (key or "").lower()
    return any(marker in key_l for marker in _SENSITIVE_KEY_MARKERS)


def redact_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, dict):
        return redact_dict(value)
    if isinstance(value, list):
        return [redact_value(v) for v in value]
    return value


def redact_dict(payload: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in payload.items():
        if _is_sensitive_key(k):
            out[k] = "[REDACTED]"
        elif (k or "").lower() in _PHONE_KEYS and isinstance(v, str):
            out[k] = _mask_phone(v)
        else:
            out[k] = redact_value(v)
    return out
