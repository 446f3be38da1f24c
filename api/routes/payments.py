"""
支付相关路由 - MultiSafepay 回调与交易操作
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from api.dependencies import UnitOfWorkFactory, build_gateway_service, get_gateway, get_uow_factory
from application.dtos.payments import PaymentForm, RequestResponse
from application.ports.payment_gateway import GatewayClient
from core.logging_config import get_logger
from core.response import success_response
from domain.common.exceptions import TransactionNotFoundException
from domain.transaction.entity import Transaction
from domain.transaction.repository import TransactionStore
from infrastructure.external.payments.exceptions import PaymentProviderError


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)


class RefundBody(BaseModel):
    description: Optional[str] = None


async def _load(store: TransactionStore, transaction_id: int) -> Transaction:
    transaction = await store.get_by_id(transaction_id)
    if transaction is None:
        raise TransactionNotFoundException(transaction_id=transaction_id)
    return transaction


def _raise_rejected(result: RequestResponse, gateway: GatewayClient, operation: str) -> None:
    logger.warning(
        "payment_operation_rejected",
        operation=operation,
        provider_code=result.code,
        error=result.message,
    )
    raise PaymentProviderError(
        result.message or f"{operation} rejected by processor",
        provider=gateway.provider,
        provider_code=result.code,
        details={"operation": operation},
    )


async def _webhook_params(request: Request) -> dict:
    params = dict(request.query_params)
    ct = (request.headers.get("content-type") or "").lower()
    if request.method == "POST" and "application/x-www-form-urlencoded" in ct:
        form = await request.form()
        for key, value in form.items():
            params.setdefault(key, value)
    return params


@router.api_route("/webhook", methods=["GET", "POST"], response_class=PlainTextResponse, summary="Processor notification")
async def payments_webhook(
    request: Request,
    gateway: GatewayClient = Depends(get_gateway),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
):
    params = await _webhook_params(request)
    async with uow_factory() as uow:
        service = build_gateway_service(gateway, uow.transaction_repository)
        result = await service.process_webhook(params)
    logger.info("webhook_acknowledged", outcome=result.outcome.value)
    # 处理器只认可 200 + 约定的响应体
    return PlainTextResponse(result.body, status_code=200)


@router.post("/transactions/{transaction_id}/purchase", summary="Start redirect purchase")
async def purchase(
    transaction_id: int,
    form: Optional[PaymentForm] = None,
    gateway: GatewayClient = Depends(get_gateway),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
):
    async with uow_factory() as uow:
        transaction = await _load(uow.transaction_repository, transaction_id)
        service = build_gateway_service(gateway, uow.transaction_repository)
        result = await service.purchase(transaction, form)
    if not result.is_redirect:
        _raise_rejected(result, gateway, "purchase")
    data = result.model_dump(mode="json")
    data["is_redirect"] = result.is_redirect
    return success_response(data=data, message="Purchase created")


@router.post("/transactions/{transaction_id}/complete", summary="Complete purchase")
async def complete_purchase(
    transaction_id: int,
    gateway: GatewayClient = Depends(get_gateway),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
):
    async with uow_factory() as uow:
        transaction = await _load(uow.transaction_repository, transaction_id)
        service = build_gateway_service(gateway, uow.transaction_repository)
        result = await service.complete_purchase(transaction)
    return success_response(data=result.model_dump(mode="json"), message="Purchase status")


@router.post("/transactions/{transaction_id}/refund", summary="Refund transaction")
async def refund(
    transaction_id: int,
    body: Optional[RefundBody] = None,
    gateway: GatewayClient = Depends(get_gateway),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
):
    async with uow_factory() as uow:
        transaction = await _load(uow.transaction_repository, transaction_id)
        service = build_gateway_service(gateway, uow.transaction_repository)
        result = await service.refund(transaction, body.description if body else None)
    if not result.is_successful:
        _raise_rejected(result, gateway, "refund")
    return success_response(data=result.model_dump(mode="json"), message="Refund submitted")
