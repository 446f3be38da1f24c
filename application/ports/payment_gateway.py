"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Callable, Optional, Protocol, runtime_checkable

from application.dtos.payments import GatewayRequestEvent, OutboundRequest, ProcessorResponse


# Pre-send hook: may inspect or mutate event.request before dispatch
RequestInterceptor = Callable[[GatewayRequestEvent], None]


@runtime_checkable
class GatewayClient(Protocol):
    """Client protocol for the payment processor REST API.

    Implementations should be async and side-effect free beyond IO. Calls must
    be bounded by a timeout; transport failures raise UpstreamCallFailedException,
    processor-side rejections come back as ProcessorResponse(successful=False).
    """

    provider: str

    async def fetch_transaction_status(self, transaction_id: str) -> ProcessorResponse: ...

    async def create_order(self, request: OutboundRequest) -> ProcessorResponse: ...

    async def refund(
        self,
        order_id: str,
        reference_id: Optional[str],
        *,
        amount: int,
        currency: str,
        description: Optional[str] = None,
    ) -> ProcessorResponse: ...

    async def aclose(self) -> None: ...
