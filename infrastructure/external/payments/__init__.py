"""
Factory for payment gateway clients.
"""
from __future__ import annotations

from typing import Optional

from core.settings import PaymentSettings, payment_settings
from application.ports.payment_gateway import GatewayClient


def get_gateway_client(config: Optional[PaymentSettings] = None) -> GatewayClient:
    cfg = config or payment_settings
    if not cfg.multisafepay.api_key:
        raise RuntimeError("PAYMENT__MULTISAFEPAY__API_KEY not configured")
    from .multisafepay_client import MultiSafepayClient
    return MultiSafepayClient(
        api_key=cfg.multisafepay.api_key,
        test_mode=cfg.multisafepay.test_mode,
        locale=cfg.multisafepay.locale,
        base_url=cfg.multisafepay.base_url,
        timeouts=cfg.timeouts.model_dump(),
        retry={"max": cfg.retry.max, "base": cfg.retry.base_backoff},
    )
