# app/santimpay/config.py
from __future__ import annotations

from dataclasses import dataclass

from settings import Settings, settings as default_settings


@dataclass(frozen=True)
class GatewayConfig:
    merchant_id: str
    private_key: str = ""
    base_url: str = ""
    mode: str = "sandbox"  # "sandbox" | "production"
    timeout_s: float = 20.0

    def __repr__(self) -> str:
        # never leak the signing key through logs / tracebacks
        return (
            f"GatewayConfig(merchant_id={self.merchant_id!r}, base_url={self.base_url!r}, "
            f"mode={self.mode!r}, timeout_s={self.timeout_s!r}, private_key='***')"
        )


def _normalize_pem(value: str) -> str:
    # env files usually carry the PEM on one line with literal "\n"
    v = (value or "").strip().strip('"').strip("'")
    return v.replace("\\n", "\n")


def santimpay_mode(s: Settings | None = None) -> str:
    s = s or default_settings
    # Literal-typed in Settings, so anything but sandbox|production fails at startup
    return s.SANTIMPAY_MODE


def gateway_config(s: Settings | None = None) -> GatewayConfig:
    s = s or default_settings
    mode = santimpay_mode(s)
    if mode == "production":
        base = s.SANTIMPAY_PRODUCTION_BASE_URL
    else:
        base = s.SANTIMPAY_SANDBOX_BASE_URL

    return GatewayConfig(
        merchant_id=(s.SANTIMPAY_MERCHANT_ID or "").strip(),
        private_key=_normalize_pem(s.SANTIMPAY_PRIVATE_KEY),
        base_url=(base or "").strip().rstrip("/"),
        mode=mode,
        timeout_s=float(s.SANTIMPAY_HTTP_TIMEOUT_S),
    )


def missing_config(cfg: GatewayConfig) -> list[str]:
    missing = []
    if not cfg.merchant_id:
        missing.append("SANTIMPAY_MERCHANT_ID")
    if not cfg.private_key:
        missing.append("SANTIMPAY_PRIVATE_KEY")
    if not cfg.base_url:
        missing.append("SANTIMPAY_BASE_URL")
    return missing
