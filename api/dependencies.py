"""
API依赖项 - 网关客户端与工作单元的组装
"""
from typing import Callable

from fastapi import Request

from application.ports.payment_gateway import GatewayClient
from application.services.gateway_service import MultiSafepayGatewayService
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.transaction.repository import TransactionStore
from infrastructure.external.payments import get_gateway_client
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


UnitOfWorkFactory = Callable[[], AbstractUnitOfWork]


async def get_gateway(request: Request) -> GatewayClient:
    """进程内共享的网关客户端，首次使用时创建，应用关闭时释放"""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        gateway = get_gateway_client()
        request.app.state.gateway = gateway
    return gateway


async def get_uow_factory() -> UnitOfWorkFactory:
    return SQLAlchemyUnitOfWork


def build_gateway_service(gateway: GatewayClient, store: TransactionStore) -> MultiSafepayGatewayService:
    return MultiSafepayGatewayService(gateway, store)
