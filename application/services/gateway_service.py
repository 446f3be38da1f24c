"""
Application service exposing the MultiSafepay gateway to the order system.

This class depends only on the GatewayClient port, the TransactionStore
contract and DTOs. Concrete implementations are injected from the
composition root (API dependencies), keeping dependencies one-way.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from application.dtos.payments import (
    WEBHOOK_HASH_PARAM,
    GatewayRequestEvent,
    OutboundRequest,
    PaymentForm,
    RequestResponse,
    WebhookRequest,
)
from application.ports.payment_gateway import GatewayClient, RequestInterceptor
from application.services.hooks import PreSendHooks
from application.services.purchase_flow import PurchaseFlow
from application.services.refund_flow import RefundFlow
from application.services.response_normalizer import ResponseNormalizer
from application.services.webhook_handler import WebhookHandler, WebhookResult
from core.logging_config import get_logger
from core.settings import PaymentSettings, payment_settings
from domain.common.exceptions import UnsupportedOperationException
from domain.transaction.entity import Transaction
from domain.transaction.repository import TransactionStore


logger = get_logger(__name__)


class MultiSafepayGatewayService:
    display_name = "MultiSafepay REST"

    def __init__(
        self,
        gateway: GatewayClient,
        store: TransactionStore,
        *,
        config: Optional[PaymentSettings] = None,
        interceptors: tuple[RequestInterceptor, ...] = (),
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.config = config or payment_settings
        self.hooks = PreSendHooks(interceptors)
        self.normalizer = ResponseNormalizer()
        self.webhooks = WebhookHandler(
            store,
            gateway,
            normalizer=self.normalizer,
            ack_body=self.config.webhook.ack_body,
        )
        self.purchases = PurchaseFlow(
            gateway,
            self.hooks,
            self.config.webhook,
            locale=self.config.multisafepay.locale,
        )
        self.refunds = RefundFlow(gateway, store, self.hooks)

    def add_interceptor(self, interceptor: RequestInterceptor) -> None:
        self.hooks.add(interceptor)

    def supports_webhooks(self) -> bool:
        return True

    def supports_complete_purchase(self) -> bool:
        return True

    @property
    def payment_type_options(self) -> dict[str, str]:
        return {"purchase": "Purchase (Authorize and Capture Immediately)"}

    @staticmethod
    def get_transaction_hash_from_webhook(params: Mapping[str, Any]) -> Optional[str]:
        return params.get(WEBHOOK_HASH_PARAM) or None

    async def process_webhook(self, params: Mapping[str, Any]) -> WebhookResult:
        return await self.webhooks.handle(WebhookRequest.from_params(dict(params)))

    def prepare_purchase_request(self, transaction: Transaction, form: Optional[PaymentForm] = None) -> OutboundRequest:
        return self.purchases.prepare_purchase_request(transaction, form)

    async def purchase(self, transaction: Transaction, form: Optional[PaymentForm] = None) -> RequestResponse:
        return await self.purchases.purchase(transaction, form)

    async def complete_purchase(self, transaction: Transaction) -> RequestResponse:
        if not self.supports_complete_purchase():
            raise UnsupportedOperationException("Completing purchase is not supported by this gateway")

        request = OutboundRequest(
            type="complete_purchase",
            transaction_hash=transaction.hash,
            order_id=transaction.hash,
        )
        self.hooks.run(GatewayRequestEvent(type=transaction.type.value, request=request, transaction=transaction))

        res = await self.gateway.fetch_transaction_status(request.order_id)
        outcome = self.normalizer.normalize(res)
        logger.info(
            "complete_purchase_response",
            transaction_id=transaction.id,
            successful=res.successful,
            category=outcome.category.value,
        )
        logger.debug("complete_purchase_response_body", transaction_id=transaction.id, body=res.body)
        return RequestResponse.from_outcome(res, outcome)

    async def refund(self, transaction: Transaction, description: Optional[str] = None) -> RequestResponse:
        return await self.refunds.refund(transaction, description)

    async def aclose(self) -> None:
        close = getattr(self.gateway, "aclose", None)
        if callable(close):
            await close()
