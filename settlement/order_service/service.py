import uuid
from decimal import Decimal

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import utcnow
from shared.config.settings import Settings
from shared.errors import ConflictError, LedgerFailure, NotFoundError, ValidationError
from shared.observability import settlement_orders_created_total
from settlement.seller_service.repository import StoreRepository
from .models import Order, OrderItem
from .repository import OrderRepository
from .saga import SagaOrchestrator
from .schemas import GatewayPayment, OrderCreate

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")

# Forward-only lifecycle; delivered orders may already be claimed by a payout
ALLOWED_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"shipped", "cancelled"},
    "shipped": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}


# --- LEDGER SAGA ---

async def insert_order(ctx: dict):
    await OrderRepository.insert_order(ctx["db"], ctx["order"])

async def insert_items(ctx: dict):
    await OrderRepository.insert_items(ctx["db"], ctx["order_id"], ctx["items"])

async def delete_order(ctx: dict):
    db = ctx["db"]
    await db.rollback()
    await OrderRepository.delete_order(db, ctx["order_id"])

def build_ledger_saga(settings: Settings) -> SagaOrchestrator:
    saga = SagaOrchestrator(
        compensation_retries=settings.ledger_compensation_retries,
        retry_delay=settings.ledger_compensation_delay,
    )
    saga.add_step("insert_order", insert_order, delete_order)
    saga.add_step("insert_items", insert_items, None)
    return saga


def _item_fingerprint(items) -> list:
    return sorted(
        (str(item.product_id), int(item.quantity), Decimal(item.price_at_purchase).quantize(CENT))
        for item in items
    )


class OrderLedger:
    @staticmethod
    def validate_request(data: OrderCreate, gateway: GatewayPayment | None):
        if data.total_price is None or data.total_price <= 0:
            raise ValidationError("total_price must be greater than zero")
        if not data.items:
            raise ValidationError("An order needs at least one item")
        if data.payment_method == "online" and gateway is None:
            raise ValidationError(
                "Online orders require a verified gateway payment",
                code="missing_payment_fields",
            )
        if data.payment_method == "cod" and gateway is not None:
            raise ValidationError("Cash-on-delivery orders cannot carry gateway payment fields")

    @staticmethod
    async def create_order(
        db: AsyncSession,
        data: OrderCreate,
        settings: Settings,
        gateway: GatewayPayment | None = None,
    ) -> tuple[Order, bool]:
        """
        Records an order and its items as one unit.

        Returns (order, created). created is False when a retry or replay of
        an already-recorded gateway payment was recognised; the existing order
        is returned instead of a duplicate.
        """
        OrderLedger.validate_request(data, gateway)

        store = await StoreRepository.get_store(db, data.store_id)
        if store is None:
            raise NotFoundError(f"Store {data.store_id} not found", code="store_not_found")

        if gateway is not None:
            existing = await OrderRepository.get_by_gateway_payment_id(db, gateway.gateway_payment_id)
            if existing is not None:
                return OrderLedger._replay(existing, data, gateway), False

        order = OrderLedger._build_order(data, settings, gateway)
        items = [
            OrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                price_at_purchase=item.price_at_purchase,
                name=item.name,
                image=item.image,
            )
            for item in data.items
        ]

        ctx = {"db": db, "order": order, "items": items, "order_id": order.id}
        try:
            await build_ledger_saga(settings).execute(ctx)
        except Exception as e:
            await db.rollback()
            # Lost a race against a concurrent submission of the same payment
            if isinstance(e, IntegrityError) and gateway is not None and ctx.get("current_step") == "insert_order":
                existing = await OrderRepository.get_by_gateway_payment_id(db, gateway.gateway_payment_id)
                if existing is not None:
                    return OrderLedger._replay(existing, data, gateway), False
            raise OrderLedger._failure(ctx, gateway) from e

        settlement_orders_created_total.labels(payment_method=order.payment_method).inc()
        logger.info(
            "order_created",
            order_id=order.id,
            store_id=order.store_id,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            items=len(items),
            is_test=order.is_test,
        )
        return await OrderRepository.get_order(db, order.id), True

    @staticmethod
    def _build_order(data: OrderCreate, settings: Settings, gateway: GatewayPayment | None) -> Order:
        order = Order(
            id=str(uuid.uuid4()),
            store_id=data.store_id,
            buyer_name=data.buyer_name,
            buyer_email=data.buyer_email,
            buyer_phone=data.buyer_phone,
            buyer_address=data.buyer_address,
            total_price=data.total_price,
            payment_method=data.payment_method,
            payment_status="pending",
            status="pending",
            is_test=False,
        )
        if gateway is not None:
            order.payment_status = "paid"
            order.paid_at = utcnow()
            order.payment_gateway = gateway.gateway
            order.gateway_order_id = gateway.gateway_order_id
            order.gateway_payment_id = gateway.gateway_payment_id
            order.gateway_signature = gateway.signature
            order.is_test = settings.is_test_mode
            if order.is_test:
                order.notes = "Test mode payment: no funds were captured"
        return order

    @staticmethod
    def _replay(existing: Order, data: OrderCreate, gateway: GatewayPayment) -> Order:
        same_order = (
            existing.store_id == data.store_id
            and Decimal(existing.total_price).quantize(CENT) == data.total_price.quantize(CENT)
            and existing.gateway_order_id == gateway.gateway_order_id
        )
        # No items yet: a first attempt is still writing them, or its cleanup failed
        if same_order and not existing.items:
            logger.error(
                "order_replay_incomplete",
                order_id=existing.id,
                gateway_payment_id=gateway.gateway_payment_id,
            )
            raise LedgerFailure(
                OrderLedger._support_message(gateway),
                order_id=existing.id,
                code="order_incomplete",
            )
        if not (same_order and _item_fingerprint(existing.items) == _item_fingerprint(data.items)):
            logger.warning(
                "gateway_payment_conflict",
                gateway_payment_id=gateway.gateway_payment_id,
                existing_order_id=existing.id,
            )
            raise ConflictError(
                f"Payment {gateway.gateway_payment_id} is already attached to a different order",
                code="payment_already_used",
            )
        logger.info("order_replayed", order_id=existing.id, gateway_payment_id=gateway.gateway_payment_id)
        return existing

    @staticmethod
    def _support_message(gateway: GatewayPayment) -> str:
        return (
            "Your payment was verified but we could not record your order. "
            f"Please contact support with payment ID {gateway.gateway_payment_id}."
        )

    @staticmethod
    def _failure(ctx: dict, gateway: GatewayPayment | None) -> LedgerFailure:
        orphaned = bool(ctx.get("failed_compensations"))
        if gateway is not None:
            # Funds are already captured by the gateway; never suggest otherwise
            message = OrderLedger._support_message(gateway)
        else:
            message = "We could not place your order. Please try again."
        logger.error(
            "order_ledger_failure",
            order_id=ctx["order_id"],
            failed_step=ctx.get("current_step"),
            orphaned=orphaned,
            gateway_payment_id=gateway.gateway_payment_id if gateway else None,
        )
        return LedgerFailure(message, order_id=ctx["order_id"], orphaned=orphaned)

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if order is None:
            raise NotFoundError("Order not found", code="order_not_found")
        return order

    @staticmethod
    async def update_status(db: AsyncSession, order_id: str, new_status: str) -> Order:
        order = await OrderLedger.get_order(db, order_id)
        current = order.status
        if new_status == current:
            return order
        if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise ConflictError(
                f"Cannot move order from {current} to {new_status}",
                code="invalid_status_transition",
            )

        values = {"status": new_status}
        if new_status == "delivered":
            values["delivered_at"] = utcnow()
        changed = await OrderRepository.update_fields(db, order_id, conditions={"status": current}, **values)
        if not changed:
            raise ConflictError("Order status changed concurrently, reload and retry", code="stale_order_status")

        logger.info("order_status_changed", order_id=order_id, from_status=current, to_status=new_status)
        return await OrderRepository.get_order(db, order_id)

