"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings so gateway credentials can be loaded
and validated on their own (env prefix PAYMENT__).
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator


class PaymentTimeouts(BaseModel):
    connect: float = 1.0
    read: float = 5.0
    write: float = 5.0
    # Wait for a free pooled connection. No phase bounds the request as a whole;
    # worst case is roughly (connect + write + read) per attempt times (retry.max + 1).
    pool: float = 10.0


class PaymentRetry(BaseModel):
    max: int = 2
    base_backoff: float = 0.2


class WebhookSettings(BaseModel):
    # Public base URL the processor can reach; used to build callback URLs
    base_url: str = "http://localhost:8000"
    path: str = "/api/v1/payments/webhook"
    ack_body: str = "ok"
    return_path: str = "/checkout/complete"
    cancel_path: str = "/checkout/cancel"


class MultiSafepaySettings(BaseModel):
    api_key: Optional[str] = None
    test_mode: bool = False
    locale: Optional[str] = None
    live_url: str = "https://api.multisafepay.com/v1/json/"
    test_url: str = "https://testapi.multisafepay.com/v1/json/"

    @property
    def base_url(self) -> str:
        return self.test_url if self.test_mode else self.live_url


class PaymentSettings(BaseSettings):
    payment_type: str = "purchase"
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)

    multisafepay: MultiSafepaySettings = Field(default_factory=MultiSafepaySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAYMENT__",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    @field_validator("payment_type")
    @classmethod
    def _only_purchase(cls, v: str) -> str:
        # Processor only supports authorize-and-capture in a single step
        if v != "purchase":
            raise ValueError("payment_type must be 'purchase'")
        return v


payment_settings = PaymentSettings()
