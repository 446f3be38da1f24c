"""
交易领域实体 - 订单系统的交易记录

根交易由订单系统在请求发往支付渠道前创建；子交易记录渠道回调结果，
通过 parent_id 挂在根交易下。本服务只读取或新增交易，从不删除。
"""
from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from domain.common.exceptions import DomainValidationException


class TransactionType(str, Enum):
    """交易类型枚举"""
    AUTHORIZE = "authorize"
    CAPTURE = "capture"
    PURCHASE = "purchase"
    REFUND = "refund"


class TransactionStatus(str, Enum):
    """交易状态枚举"""
    PENDING = "pending"
    REDIRECT = "redirect"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """确保时间为 UTC 时区"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def generate_hash() -> str:
    return uuid.uuid4().hex


@dataclass
class Transaction:
    """
    交易实体

    业务规则：
    1. hash 全局唯一，作为回调关联令牌
    2. 金额不能为负
    3. 每个根交易至多一个 status=success 的 purchase 子交易（由存储层保证）
    """

    id: Optional[int]
    hash: str
    type: TransactionType
    status: TransactionStatus
    order_id: Optional[str] = None
    parent_id: Optional[int] = None
    amount: Decimal = Decimal("0")
    payment_amount: Optional[Decimal] = None
    currency: str = "EUR"
    payment_currency: Optional[str] = None
    response: Optional[str] = None
    reference: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.hash:
            raise DomainValidationException("交易 hash 不能为空", field="hash")
        if self.amount < 0:
            raise DomainValidationException(
                f"交易金额不能为负: {self.amount}",
                field="amount"
            )
        self.type = TransactionType(self.type)
        self.status = TransactionStatus(self.status)
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def create_child(self, type: Optional[TransactionType] = None) -> "Transaction":
        """
        在当前交易下创建子交易（未持久化）

        订单、金额、币种与渠道引用从父交易继承，状态初始为 pending。
        """
        if self.id is None:
            raise DomainValidationException("父交易尚未持久化，无法创建子交易", field="parent_id")
        now = datetime.now(timezone.utc)
        return Transaction(
            id=None,
            hash=generate_hash(),
            type=type or self.type,
            status=TransactionStatus.PENDING,
            order_id=self.order_id,
            parent_id=self.id,
            amount=self.amount,
            payment_amount=self.payment_amount,
            currency=self.currency,
            payment_currency=self.payment_currency,
            reference=self.reference,
            created_at=now,
            updated_at=now,
        )

    def response_data(self) -> Optional[Any]:
        """解析存储的渠道响应；非 JSON 时返回 None"""
        if self.response is None:
            return None
        if isinstance(self.response, (dict, list)):
            return self.response
        try:
            return json.loads(self.response)
        except (TypeError, ValueError):
            return None

    def effective_payment_amount(self) -> Decimal:
        return self.payment_amount if self.payment_amount is not None else self.amount

    def effective_payment_currency(self) -> str:
        return self.payment_currency or self.currency
