"""
Normalized payment outcome.

Downstream reconciliation depends only on OutcomeCategory; processor
vocabulary never leaves the normalizer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class OutcomeCategory(str, Enum):
    COMPLETED = "completed"
    PROCESSING = "processing"
    TERMINAL_FAILURE = "terminal_failure"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PaymentOutcome:
    category: OutcomeCategory
    raw_response: Any = field(default=None, compare=False)
    processor_transaction_id: Optional[str] = None
    processor_reference: Optional[str] = None
    message: Optional[str] = None
