"""Transaction domain package."""
from .entity import Transaction, TransactionStatus, TransactionType
from .outcome import OutcomeCategory, PaymentOutcome
from .repository import TransactionStore

__all__ = [
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "OutcomeCategory",
    "PaymentOutcome",
    "TransactionStore",
]
