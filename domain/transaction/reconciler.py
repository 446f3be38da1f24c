"""
交易对账 - 将渠道结果映射为子交易

decide() 是纯决策逻辑；TransactionReconciler.reconcile() 负责查询幂等状态
并通过 TransactionStore 持久化决策结果。
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

from core.logging_config import get_logger
from domain.common.exceptions import TransactionAlreadySettledException
from .entity import Transaction, TransactionStatus, TransactionType
from .outcome import OutcomeCategory, PaymentOutcome
from .repository import TransactionStore


logger = get_logger(__name__)


CATEGORY_TO_STATUS = {
    OutcomeCategory.COMPLETED: TransactionStatus.SUCCESS,
    OutcomeCategory.PROCESSING: TransactionStatus.PROCESSING,
    OutcomeCategory.TERMINAL_FAILURE: TransactionStatus.FAILED,
}


@dataclass(frozen=True)
class NoOp:
    reason: str

    ALREADY_SETTLED = "already_settled"
    UNRECOGNIZED_STATUS = "unrecognized_status"


@dataclass(frozen=True)
class CreateChild:
    status: TransactionStatus
    type: TransactionType
    response: Optional[str]
    code: Optional[str]
    reference: Optional[str]
    message: Optional[str]
    transaction: Optional[Transaction] = None


Action = Union[NoOp, CreateChild]


def serialize_response(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, ensure_ascii=False, default=str)


def decide(root: Transaction, outcome: PaymentOutcome, *, already_settled: bool) -> Action:
    """根据幂等状态与结果分类决定动作"""
    if already_settled:
        return NoOp(NoOp.ALREADY_SETTLED)

    status = CATEGORY_TO_STATUS.get(outcome.category)
    if status is None:
        return NoOp(NoOp.UNRECOGNIZED_STATUS)

    return CreateChild(
        status=status,
        type=root.type,
        response=serialize_response(outcome.raw_response),
        code=outcome.processor_transaction_id,
        reference=outcome.processor_reference,
        message=outcome.message,
    )


class TransactionReconciler:
    def __init__(self, store: TransactionStore) -> None:
        self.store = store

    async def is_settled(self, root: Transaction) -> bool:
        return await self.store.find_successful_child(root.id, TransactionType.PURCHASE)

    async def reconcile(self, root: Transaction, outcome: PaymentOutcome) -> Action:
        action = decide(root, outcome, already_settled=await self.is_settled(root))
        if isinstance(action, NoOp):
            return action

        child = await self.store.create_child(root)
        child.type = action.type
        child.status = action.status
        child.response = action.response
        child.code = action.code
        child.reference = action.reference
        child.message = action.message
        try:
            saved = await self.store.save(child)
        except TransactionAlreadySettledException:
            # 并发投递：另一请求已写入成功子交易
            logger.info("reconcile_lost_race", parent_id=root.id, transaction_hash=root.hash)
            return NoOp(NoOp.ALREADY_SETTLED)

        logger.info(
            "reconcile_child_created",
            parent_id=root.id,
            child_id=saved.id,
            status=saved.status.value,
            code=saved.code,
        )
        return CreateChild(
            status=action.status,
            type=action.type,
            response=action.response,
            code=action.code,
            reference=action.reference,
            message=action.message,
            transaction=saved,
        )
