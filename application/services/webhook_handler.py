"""
Inbound processor notifications.

Every delivery ends in one WebhookOutcome and the same acknowledgement body;
only the persisted transaction state differs between outcomes. Errors the
service can recover from locally are logged and acknowledged. Persistence
failures are not: they propagate so the processor redelivers.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from application.dtos.payments import WebhookRequest
from application.ports.payment_gateway import GatewayClient
from application.services.response_normalizer import ResponseNormalizer
from core.logging_config import get_logger
from core.settings import payment_settings
from domain.common.exceptions import UpstreamCallFailedException
from domain.transaction.reconciler import CreateChild, NoOp, TransactionReconciler
from domain.transaction.repository import TransactionStore


logger = get_logger(__name__)


class WebhookOutcome(str, Enum):
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    ALREADY_SETTLED = "already_settled"
    FETCH_FAILED = "fetch_failed"
    RECONCILED_NOOP = "reconciled_noop"
    RECONCILED_CREATED = "reconciled_created"


@dataclass(frozen=True)
class WebhookResult:
    outcome: WebhookOutcome
    body: str


class WebhookHandler:
    def __init__(
        self,
        store: TransactionStore,
        gateway: GatewayClient,
        *,
        normalizer: ResponseNormalizer | None = None,
        reconciler: TransactionReconciler | None = None,
        ack_body: str | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.normalizer = normalizer or ResponseNormalizer()
        self.reconciler = reconciler or TransactionReconciler(store)
        self.ack_body = ack_body if ack_body is not None else payment_settings.webhook.ack_body

    def _ack(self, outcome: WebhookOutcome) -> WebhookResult:
        return WebhookResult(outcome=outcome, body=self.ack_body)

    async def handle(self, request: WebhookRequest) -> WebhookResult:
        transaction_hash = request.transaction_hash
        transaction = await self.store.find_by_hash(transaction_hash) if transaction_hash else None
        if transaction is None:
            logger.warning("webhook_transaction_not_found", transaction_hash=transaction_hash)
            return self._ack(WebhookOutcome.TRANSACTION_NOT_FOUND)

        # Short-circuit before any outbound call on duplicate deliveries
        if await self.reconciler.is_settled(transaction):
            logger.warning("webhook_already_settled", transaction_hash=transaction_hash, transaction_id=transaction.id)
            return self._ack(WebhookOutcome.ALREADY_SETTLED)

        processor_id = request.transaction_id
        if not processor_id:
            logger.warning("webhook_missing_processor_id", transaction_hash=transaction_hash)
            return self._ack(WebhookOutcome.FETCH_FAILED)

        try:
            res = await self.gateway.fetch_transaction_status(processor_id)
        except UpstreamCallFailedException as exc:
            logger.warning(
                "webhook_fetch_failed",
                transaction_hash=transaction_hash,
                processor_id=processor_id,
                error=exc.message,
            )
            return self._ack(WebhookOutcome.FETCH_FAILED)

        if not res.successful:
            logger.warning(
                "webhook_fetch_unsuccessful",
                transaction_hash=transaction_hash,
                processor_id=processor_id,
                status_code=res.status_code,
                error_code=res.error_code,
                error_info=res.error_info,
            )
            return self._ack(WebhookOutcome.FETCH_FAILED)

        outcome = self.normalizer.normalize(res)
        action = await self.reconciler.reconcile(transaction, outcome)
        if isinstance(action, CreateChild):
            logger.info(
                "webhook_reconciled",
                transaction_hash=transaction_hash,
                processor_id=processor_id,
                category=outcome.category.value,
                status=action.status.value,
            )
            return self._ack(WebhookOutcome.RECONCILED_CREATED)

        logger.info(
            "webhook_reconciled_noop",
            transaction_hash=transaction_hash,
            processor_id=processor_id,
            category=outcome.category.value,
            reason=action.reason,
        )
        if action.reason == NoOp.ALREADY_SETTLED:
            return self._ack(WebhookOutcome.ALREADY_SETTLED)
        return self._ack(WebhookOutcome.RECONCILED_NOOP)
