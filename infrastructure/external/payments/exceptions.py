"""
Exceptions for payment providers mapped to unified BusinessException variants.
"""
from __future__ import annotations

from typing import Optional
from domain.common.exceptions import UpstreamCallFailedException
from shared.codes.payment_codes import PaymentCode


class PaymentProviderError(UpstreamCallFailedException):
    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        full_details = {"provider_code": provider_code}
        if details:
            full_details.update(details)
        super().__init__(
            message,
            provider=provider,
            code=PaymentCode.PROVIDER_ERROR,
            details=full_details,
        )


class PaymentRecoverableError(UpstreamCallFailedException):
    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        full_details = {"provider_code": provider_code}
        if details:
            full_details.update(details)
        super().__init__(
            message,
            provider=provider,
            code=PaymentCode.PROVIDER_RECOVERABLE,
            details=full_details,
        )
