"""
Pre-send hooks ("before gateway request send").

Hooks run synchronously, in registration order, right before a request is
dispatched. They may change payload fields but never the request identity
(type, transaction hash, processor order id).
"""
from __future__ import annotations

from typing import Iterable, List

from application.dtos.payments import GatewayRequestEvent
from application.ports.payment_gateway import RequestInterceptor
from core.logging_config import get_logger
from domain.common.exceptions import DomainValidationException


logger = get_logger(__name__)


class PreSendHooks:
    def __init__(self, interceptors: Iterable[RequestInterceptor] = ()) -> None:
        self._interceptors: List[RequestInterceptor] = list(interceptors)

    def add(self, interceptor: RequestInterceptor) -> None:
        self._interceptors.append(interceptor)

    def __len__(self) -> int:
        return len(self._interceptors)

    def run(self, event: GatewayRequestEvent) -> None:
        identity = event.request.identity()
        for interceptor in self._interceptors:
            interceptor(event)
        if event.request.identity() != identity:
            logger.error(
                "gateway_request_identity_modified",
                transaction_id=event.transaction.id,
                before=list(identity),
                after=list(event.request.identity()),
            )
            raise DomainValidationException(
                "Pre-send hooks must not modify request identity fields",
                field="order_id",
                details={"type": event.type},
            )
