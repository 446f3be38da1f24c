"""
交易仓储实现 - 使用SQLAlchemy实现数据访问
"""
from typing import Optional, List
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from domain.common.exceptions import PersistErrorException, TransactionAlreadySettledException
from domain.transaction.entity import Transaction, TransactionStatus, TransactionType
from domain.transaction.repository import TransactionStore
from infrastructure.models.transaction import TransactionModel
from core.logging_config import get_logger


logger = get_logger(__name__)


def _is_settled_purchase_child(transaction: Transaction) -> bool:
    return (
        transaction.parent_id is not None
        and transaction.type == TransactionType.PURCHASE
        and transaction.status == TransactionStatus.SUCCESS
    )


class SQLAlchemyTransactionRepository(TransactionStore):
    """交易仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: TransactionModel) -> Transaction:
        """将数据库模型转换为领域实体"""
        return Transaction(
            id=model.id,
            hash=model.hash,
            type=TransactionType(model.type),
            status=TransactionStatus(model.status),
            order_id=model.order_id,
            parent_id=model.parent_id,
            amount=Decimal(str(model.amount)),
            payment_amount=Decimal(str(model.payment_amount)) if model.payment_amount is not None else None,
            currency=model.currency,
            payment_currency=model.payment_currency,
            response=model.response,
            reference=model.reference,
            code=model.code,
            message=model.message,
            note=model.note,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Transaction) -> TransactionModel:
        """将领域实体转换为数据库模型"""
        model = TransactionModel(
            id=entity.id,
            hash=entity.hash,
            type=entity.type.value,
            status=entity.status.value,
            order_id=entity.order_id,
            parent_id=entity.parent_id,
            amount=entity.amount,
            payment_amount=entity.payment_amount,
            currency=entity.currency,
            payment_currency=entity.payment_currency,
            response=entity.response,
            reference=entity.reference,
            code=entity.code,
            message=entity.message,
            note=entity.note,
        )
        # 时间戳为空时交给列默认值
        if entity.created_at is not None:
            model.created_at = entity.created_at
        if entity.updated_at is not None:
            model.updated_at = entity.updated_at
        return model

    async def find_by_hash(self, transaction_hash: str) -> Optional[Transaction]:
        """根据关联 hash 获取交易"""
        result = await self.session.execute(
            select(TransactionModel).where(TransactionModel.hash == transaction_hash)
        )
        db_tx = result.scalar_one_or_none()
        return self._to_entity(db_tx) if db_tx else None

    async def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        """根据ID获取交易"""
        result = await self.session.execute(
            select(TransactionModel).where(TransactionModel.id == transaction_id)
        )
        db_tx = result.scalar_one_or_none()
        return self._to_entity(db_tx) if db_tx else None

    async def get_parent(self, transaction: Transaction) -> Optional[Transaction]:
        if transaction.parent_id is None:
            return None
        return await self.get_by_id(transaction.parent_id)

    async def find_successful_child(self, parent_id: int, type: TransactionType) -> bool:
        """是否已存在指定类型的成功子交易"""
        result = await self.session.execute(
            select(func.count(TransactionModel.id)).where(
                TransactionModel.parent_id == parent_id,
                TransactionModel.status == TransactionStatus.SUCCESS.value,
                TransactionModel.type == TransactionType(type).value,
            )
        )
        return result.scalar_one() > 0

    async def list_children(self, parent_id: int) -> List[Transaction]:
        """获取子交易列表"""
        result = await self.session.execute(
            select(TransactionModel)
            .where(TransactionModel.parent_id == parent_id)
            .order_by(TransactionModel.id.asc())
        )
        return [self._to_entity(m) for m in result.scalars().all()]

    async def create(self, transaction: Transaction) -> Transaction:
        """创建交易记录"""
        db_tx = self._to_model(transaction)
        try:
            self.session.add(db_tx)
            await self.session.flush()
            await self.session.refresh(db_tx)
        except IntegrityError as e:
            await self.session.rollback()
            if _is_settled_purchase_child(transaction):
                logger.warning(
                    "transaction_settled_conflict",
                    parent_id=transaction.parent_id,
                    transaction_hash=transaction.hash,
                )
                raise TransactionAlreadySettledException(transaction.parent_id) from e
            logger.error("transaction_create_failed", transaction_hash=transaction.hash, error=str(e))
            raise PersistErrorException(
                "Failed to persist transaction",
                details={"transaction_hash": transaction.hash},
            ) from e
        except SQLAlchemyError as e:
            logger.error("transaction_create_failed", transaction_hash=transaction.hash, error=str(e))
            raise PersistErrorException(
                "Failed to persist transaction",
                details={"transaction_hash": transaction.hash},
            ) from e

        logger.info(
            "transaction_created",
            transaction_id=db_tx.id,
            parent_id=db_tx.parent_id,
            type=db_tx.type,
            status=db_tx.status,
        )
        return self._to_entity(db_tx)

    async def save(self, transaction: Transaction) -> Transaction:
        """保存交易：无ID时新建，否则更新"""
        if transaction.id is None:
            return await self.create(transaction)

        try:
            result = await self.session.execute(
                select(TransactionModel).where(TransactionModel.id == transaction.id)
            )
            db_tx = result.scalar_one_or_none()
            if not db_tx:
                raise PersistErrorException(
                    f"Transaction with id {transaction.id} not found",
                    details={"transaction_id": transaction.id},
                )

            db_tx.status = transaction.status.value
            db_tx.response = transaction.response
            db_tx.reference = transaction.reference
            db_tx.code = transaction.code
            db_tx.message = transaction.message
            db_tx.note = transaction.note

            await self.session.flush()
            await self.session.refresh(db_tx)
        except IntegrityError as e:
            await self.session.rollback()
            if _is_settled_purchase_child(transaction):
                raise TransactionAlreadySettledException(transaction.parent_id) from e
            raise PersistErrorException(
                "Failed to update transaction",
                details={"transaction_id": transaction.id},
            ) from e
        except SQLAlchemyError as e:
            raise PersistErrorException(
                "Failed to update transaction",
                details={"transaction_id": transaction.id},
            ) from e

        logger.info(
            "transaction_updated",
            transaction_id=db_tx.id,
            status=db_tx.status,
        )
        return self._to_entity(db_tx)
