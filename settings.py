# settings.py
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # -----------------------
    # DB (empty => in-memory transaction store)
    # -----------------------
    DATABASE_URL: str = ""

    # -----------------------
    # SantimPay merchant credentials
    # -----------------------
    SANTIMPAY_MERCHANT_ID: str = ""
    SANTIMPAY_PRIVATE_KEY: str = ""  # PEM, "\n" escapes accepted

    # -----------------------
    # SantimPay (Mode Switch)
    # -----------------------
    SANTIMPAY_MODE: Literal["sandbox", "production"] = "sandbox"
    SANTIMPAY_SANDBOX_BASE_URL: str = "https://testnet.santimpay.com/api/v1/gateway"
    SANTIMPAY_PRODUCTION_BASE_URL: str = "https://services.santimpay.com/api/v1/gateway"

    # HTTP timeouts
    SANTIMPAY_HTTP_TIMEOUT_S: float = Field(default=20.0, gt=0)

    # -----------------------
    # Public URLs used for redirects / notifications
    # -----------------------
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    LOG_LEVEL: str = "INFO"


settings = Settings()
