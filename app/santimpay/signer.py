# app/santimpay/signer.py
"""
ES256 token minting for SantimPay requests.

Every token embeds the merchant id and a `generated` timestamp (seconds), so two
otherwise identical operations signed at different instants never share a token.
"""
from __future__ import annotations

import time
from decimal import Decimal
from typing import Any

from jose import jwt
from jose.exceptions import JOSEError

from app.santimpay.errors import SigningError

ALGORITHM = "ES256"


def now_seconds() -> int:
    return int(time.time())


def json_number(value: Any) -> Any:
    """Decimal amounts go on the wire as plain JSON numbers."""
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise SigningError(f"amount is not a finite number: {value}")
        if value == value.to_integral_value():
            return int(value)
        as_float = float(value)
        # a float that does not round-trip would sign a different amount than the one recorded
        if Decimal(repr(as_float)) != value:
            raise SigningError(f"amount {value} cannot be represented exactly as a JSON number")
        return as_float
    return value


def sign_es256(payload: dict[str, Any], private_key: str) -> str:
    if not private_key or not private_key.strip():
        raise SigningError("private key is not configured")
    claims = {k: json_number(v) for k, v in payload.items()}
    try:
        return jwt.encode(claims, private_key, algorithm=ALGORITHM)
    except (JOSEError, TypeError, ValueError) as exc:
        raise SigningError(f"could not sign payload: {type(exc).__name__}", cause=exc) from exc


# ----------------------------------------------------------
# Per-operation token shapes
# ----------------------------------------------------------

def token_for_initiate_payment(*, amount, reason: str, merchant_id: str, private_key: str) -> str:
    return sign_es256(
        {
            "amount": amount,
            "paymentReason": reason,
            "merchantId": merchant_id,
            "generated": now_seconds(),
        },
        private_key,
    )


def token_for_direct_payment_or_b2c(
    *,
    amount,
    reason: str,
    payment_method: str,
    phone_number: str,
    merchant_id: str,
    private_key: str,
) -> str:
    return sign_es256(
        {
            "amount": amount,
            "paymentReason": reason,
            "paymentMethod": payment_method,
            "phoneNumber": phone_number,
            "merchantId": merchant_id,
            "generated": now_seconds(),
        },
        private_key,
    )


def token_for_transaction_status(*, transaction_id: str, merchant_id: str, private_key: str) -> str:
    # processor expects "merId" (not "merchantId") on the status token
    return sign_es256(
        {
            "id": transaction_id,
            "merId": merchant_id,
            "generated": now_seconds(),
        },
        private_key,
    )
