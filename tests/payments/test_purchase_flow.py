from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest

from application.dtos.payments import PaymentForm
from application.services.gateway_service import MultiSafepayGatewayService
from domain.common.exceptions import DomainValidationException

from fakes import make_root


@pytest.mark.asyncio
async def test_prepare_purchase_request_carries_hash(store, gateway):
    root = await store.create(make_root(hash="abc123", amount=Decimal("19.99")))
    service = MultiSafepayGatewayService(gateway, store)

    request = service.prepare_purchase_request(
        root,
        PaymentForm(first_name="Ada", last_name="Lovelace", email="ada@analytical-engine.org"),
    )

    assert request.type == "redirect"
    assert request.order_id == "abc123"
    assert request.amount == 1999
    assert request.currency == "EUR"
    notification = urlparse(request.payment_options.notification_url)
    assert notification.netloc == "shop.example.com"
    assert notification.path == "/api/v1/payments/webhook"
    assert parse_qs(notification.query) == {"commerceTransactionHash": ["abc123"]}
    assert "commerceTransactionHash=abc123" in request.payment_options.redirect_url
    assert "commerceTransactionHash=abc123" in request.payment_options.cancel_url

    payload = request.to_payload()
    assert payload["type"] == "redirect"
    assert payload["customer"]["email"] == "ada@analytical-engine.org"
    assert payload["payment_options"]["notification_method"] == "GET"


@pytest.mark.asyncio
async def test_hooks_run_in_order_and_may_edit_payload(store, gateway):
    root = await store.create(make_root())
    seen = []

    def first(event):
        seen.append("first")
        event.request.description = "Edited"

    def second(event):
        seen.append(("second", event.request.description, event.transaction.id))

    service = MultiSafepayGatewayService(gateway, store, interceptors=(first,))
    service.add_interceptor(second)

    request = service.prepare_purchase_request(root)

    assert seen == ["first", ("second", "Edited", root.id)]
    assert request.description == "Edited"


@pytest.mark.asyncio
async def test_hooks_cannot_change_identity(store, gateway):
    root = await store.create(make_root())

    def hijack(event):
        event.request.order_id = "someone-else"

    service = MultiSafepayGatewayService(gateway, store, interceptors=(hijack,))

    with pytest.raises(DomainValidationException):
        await service.purchase(root)
    assert gateway.order_calls == []


@pytest.mark.asyncio
async def test_purchase_returns_redirect(store, gateway):
    root = await store.create(make_root(hash="abc123"))

    result = await MultiSafepayGatewayService(gateway, store).purchase(root)

    assert result.is_redirect
    assert not result.is_successful
    assert result.redirect_url == "https://payv2.multisafepay.com/connect/abc123"
    assert result.transaction_reference == "abc123"
    assert len(gateway.order_calls) == 1
