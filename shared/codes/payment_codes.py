"""
Payment specific codes and processor status vocabulary.

The status table below is the only place that knows MultiSafepay's status
strings; everything downstream works on OutcomeCategory.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001


# MultiSafepay order status -> outcome category name
MULTISAFEPAY_STATUS_TO_CATEGORY = {
    "completed": "completed",
    "initialized": "processing",
    "uncleared": "processing",
    "expired": "terminal_failure",
    "declined": "terminal_failure",
    "cancelled": "terminal_failure",
}
