"""
Processor response -> PaymentOutcome.

The only consumer of MultiSafepay status strings. normalize() is total:
unexpected vocabulary or payload shapes yield OutcomeCategory.UNKNOWN so a
webhook delivery is never interrupted by what the processor sends.
"""
from __future__ import annotations

from typing import Optional

from application.dtos.payments import ProcessorResponse
from domain.transaction.outcome import OutcomeCategory, PaymentOutcome
from shared.codes.payment_codes import MULTISAFEPAY_STATUS_TO_CATEGORY


def categorize(status: Optional[str]) -> OutcomeCategory:
    name = MULTISAFEPAY_STATUS_TO_CATEGORY.get(status) if status is not None else None
    return OutcomeCategory(name) if name else OutcomeCategory.UNKNOWN


def _message(res: ProcessorResponse) -> Optional[str]:
    if res.error_info:
        return res.error_info
    data = res.data
    for key in ("reason", "status"):
        value = data.get(key)
        if value:
            return str(value)
    return None


def normalize(res: ProcessorResponse) -> PaymentOutcome:
    try:
        status = res.payment_status
        return PaymentOutcome(
            category=categorize(status),
            raw_response=res.body,
            processor_transaction_id=res.order_id,
            processor_reference=res.transaction_id,
            message=_message(res),
        )
    except (AttributeError, TypeError, ValueError):
        return PaymentOutcome(category=OutcomeCategory.UNKNOWN, raw_response=getattr(res, "body", None))


class ResponseNormalizer:
    def normalize(self, res: ProcessorResponse) -> PaymentOutcome:
        return normalize(res)
