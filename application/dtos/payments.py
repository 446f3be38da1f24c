"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from domain.transaction.entity import Transaction
from domain.transaction.outcome import OutcomeCategory, PaymentOutcome


# Currencies without a minor unit on the processor side
ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW"}

WEBHOOK_HASH_PARAM = "commerceTransactionHash"
WEBHOOK_TRANSACTION_ID_PARAM = "transactionid"


def to_minor_units(amount: Decimal, currency: str) -> int:
    # Processor expects amounts in the smallest currency unit
    exponent = 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2
    return int((Decimal(amount) * (Decimal(10) ** exponent)).to_integral_value())


class ProcessorResponse(BaseModel):
    """Structured response returned by the gateway client."""

    successful: bool
    status_code: Optional[int] = None
    body: Optional[dict[str, Any]] = None
    error_code: Optional[str] = None
    error_info: Optional[str] = None

    @property
    def data(self) -> dict[str, Any]:
        data = (self.body or {}).get("data")
        return data if isinstance(data, dict) else {}

    @property
    def payment_status(self) -> Optional[str]:
        status = self.data.get("status")
        return None if status is None else str(status)

    @property
    def order_id(self) -> Optional[str]:
        value = self.data.get("order_id")
        return None if value is None else str(value)

    @property
    def transaction_id(self) -> Optional[str]:
        value = self.data.get("transaction_id")
        return None if value is None else str(value)

    @property
    def payment_url(self) -> Optional[str]:
        return self.data.get("payment_url")


class PaymentForm(BaseModel):
    """Buyer details collected at checkout and forwarded to the processor."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    ip_address: Optional[str] = None
    description: Optional[str] = None


class PaymentOptions(BaseModel):
    notification_url: Optional[str] = None
    redirect_url: Optional[str] = None
    cancel_url: Optional[str] = None
    notification_method: Literal["GET", "POST"] = "GET"


class OutboundRequest(BaseModel):
    """Mutable outbound request handed to pre-send hooks before dispatch."""

    type: Literal["redirect", "complete_purchase", "refund"]
    transaction_hash: str
    order_id: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    reference: Optional[str] = None
    locale: Optional[str] = None
    payment_options: Optional[PaymentOptions] = None
    customer: dict[str, Any] = Field(default_factory=dict)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        u = v.upper()
        if len(u) != 3 or not u.isalpha():
            raise ValueError("currency must be ISO-4217 alpha-3")
        return u

    def identity(self) -> tuple[str, str, str]:
        return (self.type, self.transaction_hash, self.order_id)

    def to_payload(self) -> dict[str, Any]:
        if self.type == "refund":
            payload: dict[str, Any] = {"currency": self.currency, "amount": self.amount}
            if self.description:
                payload["description"] = self.description
            return payload

        payload = {
            "type": self.type,
            "order_id": self.order_id,
            "currency": self.currency,
            "amount": self.amount,
            "description": self.description or f"Order {self.order_id}",
        }
        if self.payment_options is not None:
            payload["payment_options"] = self.payment_options.model_dump(exclude_none=True)
        customer = dict(self.customer)
        if self.locale:
            customer.setdefault("locale", self.locale)
        if customer:
            payload["customer"] = customer
        return payload


class WebhookRequest(BaseModel):
    transaction_hash: Optional[str] = None
    transaction_id: Optional[str] = None

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "WebhookRequest":
        return cls(
            transaction_hash=params.get(WEBHOOK_HASH_PARAM) or None,
            transaction_id=params.get(WEBHOOK_TRANSACTION_ID_PARAM) or None,
        )


class RequestResponse(BaseModel):
    """Uniform result of a purchase, complete-purchase or refund call."""

    successful: bool
    processing: bool = False
    redirect_url: Optional[str] = None
    status: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None
    transaction_reference: Optional[str] = None
    data: Optional[dict[str, Any]] = None

    @property
    def is_successful(self) -> bool:
        return self.successful

    @property
    def is_processing(self) -> bool:
        return self.processing

    @property
    def is_redirect(self) -> bool:
        return bool(self.redirect_url)

    @classmethod
    def from_purchase(cls, res: ProcessorResponse) -> "RequestResponse":
        # A created redirect order is never settled yet
        return cls(
            successful=False,
            redirect_url=res.payment_url if res.successful else None,
            status=res.payment_status,
            code=res.error_code,
            message=res.error_info,
            transaction_reference=res.order_id,
            data=res.body,
        )

    @classmethod
    def from_outcome(cls, res: ProcessorResponse, outcome: PaymentOutcome) -> "RequestResponse":
        return cls(
            successful=res.successful and outcome.category == OutcomeCategory.COMPLETED,
            processing=res.successful and outcome.category == OutcomeCategory.PROCESSING,
            status=outcome.category.value,
            code=outcome.processor_transaction_id or res.error_code,
            message=outcome.message,
            transaction_reference=outcome.processor_reference,
            data=res.body,
        )

    @classmethod
    def from_refund(cls, res: ProcessorResponse) -> "RequestResponse":
        refund_id = res.data.get("refund_id")
        return cls(
            successful=res.successful,
            status="success" if res.successful else "failed",
            code=res.error_code,
            message=res.error_info,
            transaction_reference=None if refund_id is None else str(refund_id),
            data=res.body,
        )


@dataclass
class GatewayRequestEvent:
    """Payload passed to pre-send hooks."""

    type: str
    request: OutboundRequest
    transaction: Transaction
