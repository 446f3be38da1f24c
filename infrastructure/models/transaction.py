"""
交易数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Text,
    Index, ForeignKey, text
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from .base import Base


SETTLED_PURCHASE_WHERE = text("type = 'purchase' AND status = 'success'")


class TransactionModel(Base):
    """
    交易数据库模型

    根交易 -> 子交易通过 parent_id 形成树；
    部分唯一索引保证每个根交易至多一个成功的 purchase 子交易。
    """
    __tablename__ = "transactions"

    # 主键
    id = Column(Integer, primary_key=True, index=True)

    # 关联令牌与层级
    hash = Column(String(64), unique=True, nullable=False, comment="回调关联 hash")
    parent_id = Column(
        Integer,
        ForeignKey("transactions.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
        comment="父交易ID"
    )
    order_id = Column(String(100), nullable=True, index=True, comment="订单ID")

    type = Column(String(20), nullable=False, comment="类型: authorize/capture/purchase/refund")
    status = Column(
        String(20),
        nullable=False,
        default="pending",
        index=True,
        comment="状态: pending/redirect/processing/success/failed"
    )

    # 金额信息
    amount = Column(Numeric(precision=15, scale=2), nullable=False, default=0, comment="订单币种金额")
    payment_amount = Column(Numeric(precision=15, scale=2), nullable=True, comment="支付币种金额")
    currency = Column(String(3), nullable=False, default="EUR", comment="货币代码 ISO-4217")
    payment_currency = Column(String(3), nullable=True, comment="支付货币代码")

    # 渠道返回
    response = Column(Text, nullable=True, comment="最近一次渠道响应（JSON）")
    reference = Column(String(200), nullable=True, comment="渠道交易引用")
    code = Column(String(200), nullable=True, comment="渠道交易ID/错误码")
    message = Column(Text, nullable=True, comment="渠道消息")
    note = Column(Text, nullable=True, comment="备注")

    # 时间戳
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )

    parent = relationship("TransactionModel", remote_side=[id], lazy="noload")

    __table_args__ = (
        Index(
            "uq_transactions_parent_settled_purchase",
            "parent_id",
            unique=True,
            postgresql_where=SETTLED_PURCHASE_WHERE,
            sqlite_where=SETTLED_PURCHASE_WHERE,
        ),
        Index("ix_transactions_parent_type_status", "parent_id", "type", "status"),
    )

    def __repr__(self):
        return (
            f"<TransactionModel(id={self.id}, hash='{self.hash}', parent_id={self.parent_id}, "
            f"type='{self.type}', status='{self.status}')>"
        )
