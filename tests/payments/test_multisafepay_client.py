import json

import httpx
import pytest

from application.dtos.payments import OutboundRequest
from domain.common.exceptions import UpstreamCallFailedException
from infrastructure.external.payments import get_gateway_client
from infrastructure.external.payments.exceptions import PaymentProviderError, PaymentRecoverableError
from infrastructure.external.payments.multisafepay_client import MultiSafepayClient
from core.settings import PaymentSettings


def _client(handler, **kw):
    return MultiSafepayClient(
        api_key="secret-key",
        test_mode=True,
        transport=httpx.MockTransport(handler),
        retry={"max": 1, "base": 0.0},
        **kw,
    )


@pytest.mark.asyncio
async def test_fetch_transaction_status_uses_test_host_and_api_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["api_key"] = request.headers.get("api_key")
        return httpx.Response(
            200,
            json={"success": True, "data": {"order_id": "P123", "transaction_id": 4051823, "status": "completed"}},
        )

    client = _client(handler)
    res = await client.fetch_transaction_status("P123")
    await client.aclose()

    assert seen["url"] == "https://testapi.multisafepay.com/v1/json/orders/P123"
    assert seen["api_key"] == "secret-key"
    assert res.successful
    assert res.payment_status == "completed"
    assert res.order_id == "P123"
    assert res.transaction_id == "4051823"


def test_live_host_by_default():
    client = MultiSafepayClient(api_key="k")
    assert client.base_url == "https://api.multisafepay.com/v1/json/"


def test_api_key_is_required():
    with pytest.raises(ValueError):
        MultiSafepayClient(api_key="")


@pytest.mark.asyncio
async def test_processor_rejection_is_unsuccessful_response():
    def handler(request):
        return httpx.Response(404, json={"success": False, "error_code": 1006, "error_info": "Invalid transaction ID"})

    client = _client(handler)
    res = await client.fetch_transaction_status("missing")

    assert not res.successful
    assert res.status_code == 404
    assert res.error_code == "1006"
    assert res.error_info == "Invalid transaction ID"


@pytest.mark.asyncio
async def test_success_false_with_200_is_unsuccessful():
    client = _client(lambda request: httpx.Response(200, json={"success": False, "error_code": 1032}))
    res = await client.fetch_transaction_status("P1")
    assert not res.successful


@pytest.mark.asyncio
async def test_timeout_is_retried_then_raised():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler)
    with pytest.raises(PaymentRecoverableError) as exc_info:
        await client.fetch_transaction_status("P1")

    assert calls["n"] == 2
    assert isinstance(exc_info.value, UpstreamCallFailedException)
    assert exc_info.value.error_type == "UpstreamCallFailed"


@pytest.mark.asyncio
async def test_non_json_body_raises_provider_error():
    client = _client(lambda request: httpx.Response(502, text="<html>Bad gateway</html>"))
    with pytest.raises(PaymentProviderError):
        await client.fetch_transaction_status("P1")


@pytest.mark.asyncio
async def test_create_order_posts_redirect_payload():
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["json"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"success": True, "data": {"order_id": "abc", "payment_url": "https://pay.example/abc"}},
        )

    client = _client(handler, locale="nl_NL")
    req = OutboundRequest(type="redirect", transaction_hash="abc", order_id="abc", amount=1000, currency="eur")
    res = await client.create_order(req)

    assert captured["method"] == "POST"
    assert captured["path"] == "/v1/json/orders"
    assert captured["json"]["type"] == "redirect"
    assert captured["json"]["currency"] == "EUR"
    assert captured["json"]["amount"] == 1000
    assert captured["json"]["customer"] == {"locale": "nl_NL"}
    assert res.payment_url == "https://pay.example/abc"


@pytest.mark.asyncio
async def test_refund_posts_to_order_refunds():
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["json"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": {"transaction_id": 1, "refund_id": 2}})

    client = _client(handler)
    res = await client.refund("P123", "4051823", amount=500, currency="EUR", description="partial")

    assert captured["path"] == "/v1/json/orders/P123/refunds"
    assert captured["json"] == {"currency": "EUR", "amount": 500, "description": "partial"}
    assert res.successful


def test_factory_requires_api_key():
    with pytest.raises(RuntimeError):
        get_gateway_client(PaymentSettings(multisafepay={"api_key": None}))


def test_factory_builds_client_from_settings():
    cfg = PaymentSettings(multisafepay={"api_key": "k", "test_mode": True, "locale": "en_US"})
    client = get_gateway_client(cfg)
    assert isinstance(client, MultiSafepayClient)
    assert client.base_url == "https://testapi.multisafepay.com/v1/json/"
    assert client.locale == "en_US"


def test_timeouts_are_per_phase():
    cfg = PaymentSettings(timeouts={"connect": 0.5, "read": 3.0, "write": 2.0, "pool": 4.0})
    timeout = get_gateway_client(cfg).timeouts
    assert (timeout.connect, timeout.read, timeout.write, timeout.pool) == (0.5, 3.0, 2.0, 4.0)
