"""
Redirect-mode purchase: build the outbound order request and dispatch it.

The buyer is redirected to the processor's payment page; the notification
URL carries the transaction hash so the later webhook can find the
transaction again.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

from application.dtos.payments import (
    WEBHOOK_HASH_PARAM,
    GatewayRequestEvent,
    OutboundRequest,
    PaymentForm,
    PaymentOptions,
    RequestResponse,
    to_minor_units,
)
from application.ports.payment_gateway import GatewayClient
from application.services.hooks import PreSendHooks
from core.logging_config import get_logger
from core.settings import WebhookSettings
from domain.transaction.entity import Transaction


logger = get_logger(__name__)


def _with_hash(base_url: str, path: str, transaction_hash: str) -> str:
    return f"{base_url.rstrip('/')}{path}?{urlencode({WEBHOOK_HASH_PARAM: transaction_hash})}"


class PurchaseFlow:
    def __init__(
        self,
        gateway: GatewayClient,
        hooks: PreSendHooks,
        webhook: WebhookSettings,
        *,
        locale: Optional[str] = None,
    ) -> None:
        self.gateway = gateway
        self.hooks = hooks
        self.webhook = webhook
        self.locale = locale

    def prepare_purchase_request(self, transaction: Transaction, form: Optional[PaymentForm] = None) -> OutboundRequest:
        form = form or PaymentForm()
        currency = transaction.effective_payment_currency()
        customer = {
            k: v
            for k, v in {
                "first_name": form.first_name,
                "last_name": form.last_name,
                "email": form.email,
                "ip_address": form.ip_address,
            }.items()
            if v
        }
        request = OutboundRequest(
            type="redirect",
            transaction_hash=transaction.hash,
            order_id=transaction.hash,
            amount=to_minor_units(transaction.effective_payment_amount(), currency),
            currency=currency,
            description=form.description or (f"Order {transaction.order_id}" if transaction.order_id else None),
            locale=self.locale,
            payment_options=PaymentOptions(
                notification_url=_with_hash(self.webhook.base_url, self.webhook.path, transaction.hash),
                redirect_url=_with_hash(self.webhook.base_url, self.webhook.return_path, transaction.hash),
                cancel_url=_with_hash(self.webhook.base_url, self.webhook.cancel_path, transaction.hash),
            ),
            customer=customer,
        )
        self.hooks.run(GatewayRequestEvent(type=transaction.type.value, request=request, transaction=transaction))
        return request

    async def purchase(self, transaction: Transaction, form: Optional[PaymentForm] = None) -> RequestResponse:
        request = self.prepare_purchase_request(transaction, form)
        logger.info("purchase_request", transaction_id=transaction.id, order_id=request.order_id, amount=request.amount)
        res = await self.gateway.create_order(request)
        result = RequestResponse.from_purchase(res)
        logger.info(
            "purchase_response",
            transaction_id=transaction.id,
            successful=res.successful,
            redirect=result.is_redirect,
            error_code=res.error_code,
        )
        return result
