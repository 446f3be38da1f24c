"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class TransactionNotFoundException(BusinessException):
    """交易不存在（按 id 或 hash 查找）"""

    def __init__(self, *, transaction_id: Optional[int] = None, transaction_hash: Optional[str] = None):
        details = {}
        if transaction_id is not None:
            details["transaction_id"] = transaction_id
        if transaction_hash is not None:
            details["transaction_hash"] = transaction_hash
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message="Transaction not found",
            error_type="NotFound",
            details=details or None,
        )


class TransactionAlreadySettledException(BusinessException):
    """根交易已存在成功的 purchase 子交易"""

    def __init__(self, parent_id: Optional[int]):
        super().__init__(
            code=BusinessCode.TRANSACTION_ALREADY_SETTLED,
            message=f"Successful purchase child transaction already exists for parent {parent_id}",
            error_type="AlreadySettled",
            details={"parent_id": parent_id},
        )


class UnsupportedOperationException(BusinessException):
    """操作前置条件不满足，不可重试"""

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(
            code=BusinessCode.UNSUPPORTED_OPERATION,
            message=message,
            error_type="UnsupportedOperation",
            details=details,
        )


class PersistErrorException(BusinessException):
    """交易记录持久化失败（不得吞掉，否则丢失对账记录）"""

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(
            code=BusinessCode.DATABASE_ERROR,
            message=message,
            error_type="PersistError",
            details=details,
        )


class UpstreamCallFailedException(BusinessException):
    """支付渠道调用失败（网络、超时或无法解析的响应）"""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        code: int = BusinessCode.NETWORK_ERROR,
        details: Optional[dict] = None,
    ):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=code,
            message=message,
            error_type="UpstreamCallFailed",
            details=full_details,
        )
