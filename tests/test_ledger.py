from decimal import Decimal

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select

from shared.errors import ConflictError, LedgerFailure, NotFoundError, ValidationError
from settlement.order_service.models import Order, OrderItem
from settlement.order_service.repository import OrderRepository
from settlement.order_service.schemas import GatewayPayment
from settlement.order_service.service import OrderLedger


async def _count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


VALID_ITEM = {
    "product_id": "0b7e6a4c-9f0e-4f6b-8a3a-2b1d5c7e9f10",
    "quantity": 2,
    "price_at_purchase": "250.00",
    "name": "Cotton Kurta",
}


def _gateway(payment_id="pay_001", order_id="order_001"):
    return GatewayPayment(gateway_order_id=order_id, gateway_payment_id=payment_id, signature="sig")


async def test_cod_order_is_recorded_with_items(db, settings, make_store, order_request):
    store = await make_store()
    order, created = await OrderLedger.create_order(db, order_request(store.id), settings)

    assert created is True
    assert order.payment_method == "cod"
    assert order.payment_status == "pending"
    assert order.status == "pending"
    assert order.is_test is False
    assert len(order.items) == 1
    assert order.items[0].price_at_purchase == Decimal("1999.00")


async def test_online_order_is_paid_and_marked_test_mode(db, settings, make_store, order_request):
    store = await make_store()
    order, created = await OrderLedger.create_order(
        db, order_request(store.id, payment_method="online"), settings, gateway=_gateway()
    )

    assert created is True
    assert order.payment_status == "paid"
    assert order.paid_at is not None
    assert order.gateway_payment_id == "pay_001"
    assert order.payment_gateway == "razorpay"
    assert order.is_test is True
    assert "Test mode" in order.notes


async def test_unknown_store_is_not_found(db, settings, order_request):
    with pytest.raises(NotFoundError) as exc:
        await OrderLedger.create_order(db, order_request("missing-store"), settings)
    assert exc.value.code == "store_not_found"


@pytest.mark.parametrize("overrides", [
    {"total": "0"},
    {"total": "-5.00", "items": [VALID_ITEM]},
    {"items": []},
])
async def test_invalid_requests_write_nothing(db, settings, make_store, order_request, overrides):
    store = await make_store()
    with pytest.raises(ValidationError):
        await OrderLedger.create_order(db, order_request(store.id, **overrides), settings)
    assert await _count(db, Order) == 0


async def test_online_order_without_gateway_is_rejected(db, settings, make_store, order_request):
    store = await make_store()
    with pytest.raises(ValidationError) as exc:
        await OrderLedger.create_order(db, order_request(store.id, payment_method="online"), settings)
    assert exc.value.code == "missing_payment_fields"


async def test_item_failure_removes_the_order(db, settings, make_store, order_request, monkeypatch):
    store = await make_store()

    async def broken_insert(db, order_id, items):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(OrderRepository, "insert_items", staticmethod(broken_insert))

    with pytest.raises(LedgerFailure) as exc:
        await OrderLedger.create_order(db, order_request(store.id), settings)

    assert exc.value.orphaned is False
    assert await _count(db, Order) == 0
    assert await _count(db, OrderItem) == 0


async def test_online_failure_message_names_the_payment(db, settings, make_store, order_request, monkeypatch):
    store = await make_store()

    async def broken_insert(db, order_id, items):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(OrderRepository, "insert_items", staticmethod(broken_insert))

    with pytest.raises(LedgerFailure) as exc:
        await OrderLedger.create_order(
            db, order_request(store.id, payment_method="online"), settings, gateway=_gateway("pay_lost")
        )
    assert "pay_lost" in exc.value.message
    assert "payment was verified" in exc.value.message


async def test_compensation_is_retried(db, settings, make_store, order_request, monkeypatch):
    store = await make_store()
    real_delete = OrderRepository.delete_order
    calls = []

    async def broken_insert(db, order_id, items):
        raise RuntimeError("connection reset")

    async def flaky_delete(db, order_id):
        calls.append(order_id)
        if len(calls) == 1:
            raise RuntimeError("deadlock detected")
        await real_delete(db, order_id)

    monkeypatch.setattr(OrderRepository, "insert_items", staticmethod(broken_insert))
    monkeypatch.setattr(OrderRepository, "delete_order", staticmethod(flaky_delete))

    with pytest.raises(LedgerFailure) as exc:
        await OrderLedger.create_order(db, order_request(store.id), settings)

    assert len(calls) == 2
    assert exc.value.orphaned is False
    assert await _count(db, Order) == 0


async def test_exhausted_compensation_raises_orphan_alarm(db, settings, make_store, order_request, monkeypatch):
    store = await make_store()
    before = REGISTRY.get_sample_value("settlement_orphan_orders_total") or 0

    async def broken_insert(db, order_id, items):
        raise RuntimeError("connection reset")

    async def broken_delete(db, order_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(OrderRepository, "insert_items", staticmethod(broken_insert))
    monkeypatch.setattr(OrderRepository, "delete_order", staticmethod(broken_delete))

    with pytest.raises(LedgerFailure) as exc:
        await OrderLedger.create_order(db, order_request(store.id), settings)

    assert exc.value.orphaned is True
    assert exc.value.order_id is not None
    assert REGISTRY.get_sample_value("settlement_orphan_orders_total") == before + 1


async def test_replayed_payment_returns_the_same_order(db, settings, make_store, order_request):
    store = await make_store()
    request = order_request(store.id, payment_method="online")

    first, created_first = await OrderLedger.create_order(db, request, settings, gateway=_gateway())
    second, created_second = await OrderLedger.create_order(db, request, settings, gateway=_gateway())

    assert created_first is True
    assert created_second is False
    assert second.id == first.id
    assert await _count(db, Order) == 1
    assert await _count(db, OrderItem) == 1


async def test_reused_payment_for_different_order_conflicts(db, settings, make_store, order_request):
    store = await make_store()
    await OrderLedger.create_order(
        db, order_request(store.id, payment_method="online"), settings, gateway=_gateway()
    )

    with pytest.raises(ConflictError) as exc:
        await OrderLedger.create_order(
            db, order_request(store.id, total="2500.00", payment_method="online"), settings, gateway=_gateway()
        )
    assert exc.value.code == "payment_already_used"
    assert await _count(db, Order) == 1


async def test_status_moves_forward_and_stamps_delivery(db, settings, make_store, order_request):
    store = await make_store()
    order, _ = await OrderLedger.create_order(db, order_request(store.id), settings)

    for status in ("confirmed", "shipped", "delivered"):
        order = await OrderLedger.update_status(db, order.id, status)

    assert order.status == "delivered"
    assert order.delivered_at is not None


async def test_status_cannot_move_backwards(db, settings, make_store, order_request):
    store = await make_store()
    order, _ = await OrderLedger.create_order(db, order_request(store.id), settings)
    await OrderLedger.update_status(db, order.id, "cancelled")

    with pytest.raises(ConflictError) as exc:
        await OrderLedger.update_status(db, order.id, "confirmed")
    assert exc.value.code == "invalid_status_transition"



async def test_retry_while_items_are_written_is_not_a_conflict(db, session_factory, settings, make_store, order_request, monkeypatch):
    store = await make_store()
    request = order_request(store.id, payment_method="online")
    real_insert = OrderRepository.insert_items
    retries = []

    async def insert_with_concurrent_retry(db, order_id, items):
        async with session_factory() as other:
            try:
                await OrderLedger.create_order(other, request, settings, gateway=_gateway())
            except (LedgerFailure, ConflictError) as e:
                retries.append(e)
        return await real_insert(db, order_id, items)

    monkeypatch.setattr(OrderRepository, "insert_items", staticmethod(insert_with_concurrent_retry))

    order, created = await OrderLedger.create_order(db, request, settings, gateway=_gateway())

    assert created is True
    assert len(retries) == 1
    assert isinstance(retries[0], LedgerFailure)
    assert retries[0].code == "order_incomplete"
    assert "pay_001" in retries[0].message

    # Once the first attempt finished, the same retry is a plain replay
    monkeypatch.setattr(OrderRepository, "insert_items", staticmethod(real_insert))
    replayed, created_again = await OrderLedger.create_order(db, request, settings, gateway=_gateway())
    assert created_again is False
    assert replayed.id == order.id
    assert len(replayed.items) == 1


async def test_retry_after_orphaned_order_points_to_support(db, settings, make_store, order_request, monkeypatch):
    store = await make_store()
    request = order_request(store.id, payment_method="online")

    async def broken_insert(db, order_id, items):
        raise RuntimeError("connection reset")

    async def broken_delete(db, order_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(OrderRepository, "insert_items", staticmethod(broken_insert))
    monkeypatch.setattr(OrderRepository, "delete_order", staticmethod(broken_delete))

    with pytest.raises(LedgerFailure) as first:
        await OrderLedger.create_order(db, request, settings, gateway=_gateway())
    assert first.value.orphaned is True

    monkeypatch.undo()

    with pytest.raises(LedgerFailure) as retry:
        await OrderLedger.create_order(db, request, settings, gateway=_gateway())

    assert retry.value.code == "order_incomplete"
    assert retry.value.order_id == first.value.order_id
    assert "contact support with payment ID pay_001" in retry.value.message
