"""
交易仓储接口 - 订单系统交易存储的抽象
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import Transaction, TransactionType


class TransactionStore(ABC):
    """交易仓储抽象接口

    save() 对 (parent_id, purchase, success) 的检查与写入必须是原子的：
    实现方需通过唯一约束或事务内检查后插入来保证，冲突时抛出
    TransactionAlreadySettledException。
    """

    @abstractmethod
    async def find_by_hash(self, transaction_hash: str) -> Optional[Transaction]:
        """根据关联 hash 获取交易"""
        pass

    @abstractmethod
    async def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        """根据ID获取交易"""
        pass

    @abstractmethod
    async def get_parent(self, transaction: Transaction) -> Optional[Transaction]:
        """获取父交易"""
        pass

    @abstractmethod
    async def find_successful_child(self, parent_id: int, type: TransactionType) -> bool:
        """是否已存在指定类型的成功子交易"""
        pass

    @abstractmethod
    async def list_children(self, parent_id: int) -> List[Transaction]:
        """获取子交易列表"""
        pass

    @abstractmethod
    async def create(self, transaction: Transaction) -> Transaction:
        """创建交易记录"""
        pass

    async def create_child(self, parent: Transaction) -> Transaction:
        """在父交易下创建子交易（未持久化）"""
        return parent.create_child()

    @abstractmethod
    async def save(self, transaction: Transaction) -> Transaction:
        """保存交易（新建或更新），失败抛出 PersistErrorException"""
        pass
