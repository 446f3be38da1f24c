"""add_transactions_table

Revision ID: 3b1f2c7d9e41
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3b1f2c7d9e41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


SETTLED_PURCHASE_WHERE = sa.text("type = 'purchase' AND status = 'success'")


def upgrade() -> None:
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('hash', sa.String(length=64), nullable=False, comment='回调关联 hash'),
        sa.Column('parent_id', sa.Integer(), nullable=True, comment='父交易ID'),
        sa.Column('order_id', sa.String(length=100), nullable=True, comment='订单ID'),
        sa.Column('type', sa.String(length=20), nullable=False, comment='类型: authorize/capture/purchase/refund'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending', comment='状态: pending/redirect/processing/success/failed'),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0', comment='订单币种金额'),
        sa.Column('payment_amount', sa.Numeric(precision=15, scale=2), nullable=True, comment='支付币种金额'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='EUR', comment='货币代码 ISO-4217'),
        sa.Column('payment_currency', sa.String(length=3), nullable=True, comment='支付货币代码'),
        sa.Column('response', sa.Text(), nullable=True, comment='最近一次渠道响应（JSON）'),
        sa.Column('reference', sa.String(length=200), nullable=True, comment='渠道交易引用'),
        sa.Column('code', sa.String(length=200), nullable=True, comment='渠道交易ID/错误码'),
        sa.Column('message', sa.Text(), nullable=True, comment='渠道消息'),
        sa.Column('note', sa.Text(), nullable=True, comment='备注'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, comment='更新时间'),
        sa.ForeignKeyConstraint(['parent_id'], ['transactions.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('hash'),
    )

    op.create_index('ix_transactions_id', 'transactions', ['id'], unique=False)
    op.create_index('ix_transactions_parent_id', 'transactions', ['parent_id'], unique=False)
    op.create_index('ix_transactions_order_id', 'transactions', ['order_id'], unique=False)
    op.create_index('ix_transactions_status', 'transactions', ['status'], unique=False)
    op.create_index('ix_transactions_parent_type_status', 'transactions', ['parent_id', 'type', 'status'], unique=False)
    # 每个根交易至多一个成功的 purchase 子交易
    op.create_index(
        'uq_transactions_parent_settled_purchase',
        'transactions',
        ['parent_id'],
        unique=True,
        postgresql_where=SETTLED_PURCHASE_WHERE,
        sqlite_where=SETTLED_PURCHASE_WHERE,
    )


def downgrade() -> None:
    op.drop_index('uq_transactions_parent_settled_purchase', table_name='transactions')
    op.drop_index('ix_transactions_parent_type_status', table_name='transactions')
    op.drop_index('ix_transactions_status', table_name='transactions')
    op.drop_index('ix_transactions_order_id', table_name='transactions')
    op.drop_index('ix_transactions_parent_id', table_name='transactions')
    op.drop_index('ix_transactions_id', table_name='transactions')
    op.drop_table('transactions')
