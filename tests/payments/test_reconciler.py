import json

import pytest

from domain.transaction import OutcomeCategory, PaymentOutcome, TransactionStatus, TransactionType
from domain.transaction.reconciler import CreateChild, NoOp, TransactionReconciler, decide

from fakes import InMemoryTransactionStore, make_root


def _outcome(category, **kw):
    return PaymentOutcome(
        category=category,
        raw_response={"success": True, "data": {"order_id": "P123", "status": "x"}},
        processor_transaction_id=kw.get("code", "P123"),
        processor_reference=kw.get("reference", "9001"),
        message=kw.get("message", "x"),
    )


@pytest.mark.parametrize(
    "category,status",
    [
        (OutcomeCategory.COMPLETED, TransactionStatus.SUCCESS),
        (OutcomeCategory.PROCESSING, TransactionStatus.PROCESSING),
        (OutcomeCategory.TERMINAL_FAILURE, TransactionStatus.FAILED),
    ],
)
def test_decide_maps_category_to_child_status(category, status):
    root = make_root(id=1)
    action = decide(root, _outcome(category), already_settled=False)
    assert isinstance(action, CreateChild)
    assert action.status == status
    assert action.type == root.type
    assert action.code == "P123"
    assert action.reference == "9001"
    assert json.loads(action.response)["data"]["order_id"] == "P123"


def test_decide_unknown_is_noop():
    action = decide(make_root(id=1), _outcome(OutcomeCategory.UNKNOWN), already_settled=False)
    assert action == NoOp(NoOp.UNRECOGNIZED_STATUS)


@pytest.mark.parametrize("category", list(OutcomeCategory))
def test_decide_settled_root_is_always_noop(category):
    action = decide(make_root(id=1), _outcome(category), already_settled=True)
    assert action == NoOp(NoOp.ALREADY_SETTLED)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "category,status",
    [
        (OutcomeCategory.COMPLETED, TransactionStatus.SUCCESS),
        (OutcomeCategory.PROCESSING, TransactionStatus.PROCESSING),
        (OutcomeCategory.TERMINAL_FAILURE, TransactionStatus.FAILED),
    ],
)
async def test_reconcile_persists_exactly_one_child(store, category, status):
    root = await store.create(make_root())
    action = await TransactionReconciler(store).reconcile(root, _outcome(category, message="done"))

    children = await store.list_children(root.id)
    assert len(children) == 1
    child = children[0]
    assert isinstance(action, CreateChild)
    assert action.transaction.id == child.id
    assert child.parent_id == root.id
    assert child.type == TransactionType.PURCHASE
    assert child.status == status
    assert child.code == "P123"
    assert child.message == "done"
    assert child.order_id == root.order_id
    assert child.hash != root.hash


@pytest.mark.asyncio
async def test_reconcile_unknown_creates_nothing(store):
    root = await store.create(make_root())
    action = await TransactionReconciler(store).reconcile(root, _outcome(OutcomeCategory.UNKNOWN))
    assert action == NoOp(NoOp.UNRECOGNIZED_STATUS)
    assert await store.list_children(root.id) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("category", list(OutcomeCategory))
async def test_reconcile_on_settled_root_never_mutates(store, category):
    root = await store.create(make_root())
    reconciler = TransactionReconciler(store)
    await reconciler.reconcile(root, _outcome(OutcomeCategory.COMPLETED))

    action = await reconciler.reconcile(root, _outcome(category))

    assert action == NoOp(NoOp.ALREADY_SETTLED)
    assert len(await store.list_children(root.id)) == 1


class _StalePrecheckStore(InMemoryTransactionStore):
    """Pre-check misses a concurrently written child; save still enforces the rule."""

    async def find_successful_child(self, parent_id, type):
        return False


@pytest.mark.asyncio
async def test_reconcile_lost_race_reports_already_settled():
    store = _StalePrecheckStore()
    root = await store.create(make_root())
    reconciler = TransactionReconciler(store)
    first = await reconciler.reconcile(root, _outcome(OutcomeCategory.COMPLETED))
    second = await reconciler.reconcile(root, _outcome(OutcomeCategory.COMPLETED))

    assert isinstance(first, CreateChild)
    assert second == NoOp(NoOp.ALREADY_SETTLED)
    assert len(await store.list_children(root.id)) == 1
