"""
MultiSafepay REST adapter (JSON API v1).

Endpoints used:
- GET  orders/{order_id}            fetch order/transaction status
- POST orders                       create a redirect order
- POST orders/{order_id}/refunds    refund (part of) an order

Authentication is the `api_key` header. Test mode switches to the test host.
"""
from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx

from application.dtos.payments import OutboundRequest, ProcessorResponse
from infrastructure.external.payments.base import BasePaymentClient


class MultiSafepayClient(BasePaymentClient):
    provider = "multisafepay"

    def __init__(
        self,
        *,
        api_key: str,
        test_mode: bool = False,
        locale: Optional[str] = None,
        base_url: Optional[str] = None,
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ValueError("MultiSafepay api_key is required")
        if base_url is None:
            base_url = (
                "https://testapi.multisafepay.com/v1/json/"
                if test_mode
                else "https://api.multisafepay.com/v1/json/"
            )
        super().__init__(
            base_url=base_url,
            headers={"api_key": api_key},
            timeouts=timeouts,
            retry=retry,
            transport=transport,
        )
        self.test_mode = test_mode
        self.locale = locale

    async def fetch_transaction_status(self, transaction_id: str) -> ProcessorResponse:
        self._log("payment_fetch_transaction", transaction_id=transaction_id, test_mode=self.test_mode)
        return await self._request("GET", f"orders/{quote(str(transaction_id), safe='')}")

    async def create_order(self, request: OutboundRequest) -> ProcessorResponse:
        if request.locale is None and self.locale:
            request.locale = self.locale
        self._log("payment_create_order", order_id=request.order_id, amount=request.amount, currency=request.currency)
        return await self._request("POST", "orders", json=request.to_payload())

    async def refund(
        self,
        order_id: str,
        reference_id: Optional[str],
        *,
        amount: int,
        currency: str,
        description: Optional[str] = None,
    ) -> ProcessorResponse:
        payload: dict[str, Any] = {"currency": currency, "amount": amount}
        if description:
            payload["description"] = description
        self._log("payment_refund", order_id=order_id, reference=reference_id, amount=amount, currency=currency)
        return await self._request("POST", f"orders/{quote(str(order_id), safe='')}/refunds", json=payload)
