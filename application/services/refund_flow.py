"""
Refund by processor order id.

The processor addresses refunds by its own order id, which only exists in
the stored response of the refunded transaction's parent.
"""
from __future__ import annotations

from typing import Any, Optional

from application.dtos.payments import GatewayRequestEvent, OutboundRequest, RequestResponse, to_minor_units
from application.ports.payment_gateway import GatewayClient
from application.services.hooks import PreSendHooks
from core.logging_config import get_logger
from domain.common.exceptions import UnsupportedOperationException
from domain.transaction.entity import Transaction
from domain.transaction.repository import TransactionStore


logger = get_logger(__name__)

MISSING_ORDER_MESSAGE = "Cannot refund this transaction as the parent order cannot be found"


def extract_order_id(response_data: Any) -> Optional[str]:
    """Processor order id at data.order_id of a stored response."""
    if not isinstance(response_data, dict):
        return None
    data = response_data.get("data")
    if not isinstance(data, dict):
        return None
    order_id = data.get("order_id")
    if order_id is None or order_id == "":
        return None
    return str(order_id)


class RefundFlow:
    def __init__(self, gateway: GatewayClient, store: TransactionStore, hooks: PreSendHooks) -> None:
        self.gateway = gateway
        self.store = store
        self.hooks = hooks

    async def resolve_order_id(self, transaction: Transaction) -> str:
        parent = await self.store.get_parent(transaction) if transaction.parent_id is not None else None
        order_id = extract_order_id(parent.response_data()) if parent is not None else None
        if order_id is None:
            logger.warning(
                "refund_parent_order_missing",
                transaction_id=transaction.id,
                parent_id=transaction.parent_id,
            )
            raise UnsupportedOperationException(
                MISSING_ORDER_MESSAGE,
                details={"transaction_id": transaction.id, "parent_id": transaction.parent_id},
            )
        return order_id

    async def refund(self, transaction: Transaction, description: Optional[str] = None) -> RequestResponse:
        order_id = await self.resolve_order_id(transaction)
        currency = transaction.effective_payment_currency()
        request = OutboundRequest(
            type="refund",
            transaction_hash=transaction.hash,
            order_id=order_id,
            amount=to_minor_units(transaction.effective_payment_amount(), currency),
            currency=currency,
            reference=transaction.reference,
            description=description or transaction.note,
        )
        self.hooks.run(GatewayRequestEvent(type=transaction.type.value, request=request, transaction=transaction))

        logger.info(
            "refund_request",
            transaction_id=transaction.id,
            order_id=order_id,
            amount=request.amount,
            currency=request.currency,
        )
        res = await self.gateway.refund(
            request.order_id,
            request.reference,
            amount=request.amount,
            currency=request.currency,
            description=request.description,
        )
        result = RequestResponse.from_refund(res)
        logger.info(
            "refund_response",
            transaction_id=transaction.id,
            order_id=order_id,
            successful=result.is_successful,
            error_code=res.error_code,
        )
        return result
