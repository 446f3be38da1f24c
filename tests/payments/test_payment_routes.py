import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_gateway, get_uow_factory
from application.dtos.payments import ProcessorResponse
from domain.common.exceptions import PersistErrorException
from domain.transaction import TransactionStatus, TransactionType
from main import app
from shared.codes.payment_codes import PaymentCode

from fakes import FakeUnitOfWork, InMemoryTransactionStore, StubGateway, make_root


@pytest.fixture
def api(store, gateway):
    async def _gateway():
        return gateway

    async def _uow_factory():
        return lambda: FakeUnitOfWork(store)

    app.dependency_overrides[get_gateway] = _gateway
    app.dependency_overrides[get_uow_factory] = _uow_factory
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _seed(store, transaction):
    return asyncio.run(store.create(transaction))


def test_webhook_get_acknowledges_with_plain_ok(api, store, gateway):
    root = _seed(store, make_root(hash="h1"))

    resp = api.get("/api/v1/payments/webhook", params={"commerceTransactionHash": "h1", "transactionid": "P123"})

    assert resp.status_code == 200
    assert resp.text == "ok"
    assert resp.headers["content-type"].startswith("text/plain")
    assert "X-Request-ID" in resp.headers
    children = asyncio.run(store.list_children(root.id))
    assert [c.status for c in children] == [TransactionStatus.SUCCESS]


def test_webhook_post_with_unknown_hash_still_ok(api, gateway):
    resp = api.post(
        "/api/v1/payments/webhook?commerceTransactionHash=missing&transactionid=P1",
        json={"timestamp": "2026-10-19T09:00:00"},
    )
    assert resp.status_code == 200
    assert resp.text == "ok"
    assert gateway.fetch_calls == []


def test_webhook_post_form_params(api, store, gateway):
    _seed(store, make_root(hash="h2"))
    resp = api.post(
        "/api/v1/payments/webhook",
        data={"commerceTransactionHash": "h2", "transactionid": "P2"},
    )
    assert resp.text == "ok"
    assert gateway.fetch_calls == ["P2"]


def test_webhook_persist_error_is_server_error(gateway):
    class BrokenStore(InMemoryTransactionStore):
        async def save(self, transaction):
            if transaction.parent_id is not None:
                raise PersistErrorException("Failed to persist transaction")
            return await super().save(transaction)

    store = BrokenStore()
    _seed(store, make_root(hash="h1"))

    async def _gateway():
        return gateway

    async def _uow_factory():
        return lambda: FakeUnitOfWork(store)

    app.dependency_overrides[get_gateway] = _gateway
    app.dependency_overrides[get_uow_factory] = _uow_factory
    try:
        resp = TestClient(app).get(
            "/api/v1/payments/webhook", params={"commerceTransactionHash": "h1", "transactionid": "P123"}
        )
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json()["error"]["type"] == "PersistError"


def test_purchase_returns_redirect_envelope(api, store):
    root = _seed(store, make_root(hash="abc123"))

    resp = api.post(
        f"/api/v1/payments/transactions/{root.id}/purchase",
        json={"first_name": "Ada", "email": "ada@analytical-engine.org"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["code"] == 0
    assert body["data"]["is_redirect"] is True
    assert body["data"]["redirect_url"].endswith("/abc123")


def test_complete_purchase_envelope(api, store):
    root = _seed(store, make_root())
    resp = api.post(f"/api/v1/payments/transactions/{root.id}/complete")
    assert resp.status_code == 200
    assert resp.json()["data"]["successful"] is True
    assert resp.json()["data"]["status"] == "completed"


def test_refund_precondition_failure_is_400(api, store, gateway):
    root = _seed(store, make_root())
    tx = _seed(store, root.create_child(TransactionType.REFUND))

    resp = api.post(f"/api/v1/payments/transactions/{tx.id}/refund")

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["type"] == "UnsupportedOperation"
    assert "parent order" in body["message"]
    assert gateway.refund_calls == []


def test_refund_success(api, store, gateway):
    root = _seed(store, make_root(response=json.dumps({"data": {"order_id": "P123"}})))
    tx = _seed(store, root.create_child(TransactionType.REFUND))

    resp = api.post(f"/api/v1/payments/transactions/{tx.id}/refund", json={"description": "return"})

    assert resp.status_code == 200
    assert resp.json()["data"]["successful"] is True
    assert gateway.refund_calls[0]["order_id"] == "P123"
    assert gateway.refund_calls[0]["description"] == "return"


def test_unknown_transaction_is_404(api):
    resp = api.post("/api/v1/payments/transactions/999/complete")
    assert resp.status_code == 404
    assert resp.json()["error"]["type"] == "NotFound"


def test_health(api):
    resp = api.get("/health")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"status": "healthy"}


class RejectingGateway(StubGateway):
    async def create_order(self, request):
        self.order_calls.append(request)
        return ProcessorResponse(
            successful=False,
            status_code=400,
            body={"success": False, "error_code": 1001, "error_info": "Invalid amount"},
            error_code="1001",
            error_info="Invalid amount",
        )

    async def refund(self, order_id, reference_id, *, amount, currency, description=None):
        self.refund_calls.append({"order_id": order_id})
        return ProcessorResponse(
            successful=False,
            status_code=422,
            body={"success": False, "error_code": 1024, "error_info": "Insufficient balance"},
            error_code="1024",
            error_info="Insufficient balance",
        )


@pytest.fixture
def rejecting_api(store):
    gateway = RejectingGateway()

    async def _gateway():
        return gateway

    async def _uow_factory():
        return lambda: FakeUnitOfWork(store)

    app.dependency_overrides[get_gateway] = _gateway
    app.dependency_overrides[get_uow_factory] = _uow_factory
    try:
        yield TestClient(app), gateway
    finally:
        app.dependency_overrides.clear()


def test_rejected_refund_is_upstream_failure(rejecting_api, store):
    api, gateway = rejecting_api
    root = _seed(store, make_root(response=json.dumps({"data": {"order_id": "P123"}})))
    tx = _seed(store, root.create_child(TransactionType.REFUND))

    resp = api.post(f"/api/v1/payments/transactions/{tx.id}/refund")

    assert resp.status_code == 502
    body = resp.json()
    assert body["code"] == PaymentCode.PROVIDER_ERROR
    assert body["message"] == "Insufficient balance"
    assert body["error"]["type"] == "UpstreamCallFailed"
    assert body["error"]["details"]["provider_code"] == "1024"
    assert gateway.refund_calls == [{"order_id": "P123"}]


def test_rejected_purchase_is_upstream_failure(rejecting_api, store):
    api, gateway = rejecting_api
    root = _seed(store, make_root(hash="abc123"))

    resp = api.post(f"/api/v1/payments/transactions/{root.id}/purchase")

    assert resp.status_code == 502
    body = resp.json()
    assert body["message"] == "Invalid amount"
    assert body["error"]["type"] == "UpstreamCallFailed"
    assert body["error"]["details"]["provider_code"] == "1001"
    assert len(gateway.order_calls) == 1
