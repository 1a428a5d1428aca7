import structlog
from fastapi import BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shared.config.database import get_session_factory
from shared.config.settings import Settings, get_settings
from shared.errors import ValidationError
from shared.observability import settlement_checkout_duration_seconds
from settlement.notification_service.schemas import NotificationEvent
from settlement.notification_service.service import NotificationDispatcher, get_dispatcher
from settlement.order_service.models import Order
from settlement.order_service.schemas import GatewayPayment, OrderCreate
from settlement.order_service.service import OrderLedger
from settlement.payment_service.gateway import RazorpayClient
from settlement.payment_service.schemas import GatewayOrderCreate
from settlement.payment_service.service import GatewayOrderService
from settlement.payment_service.verifier import ensure_payment_signature
from settlement.referral_service.service import ReferralService
from settlement.seller_service.repository import StoreRepository
from .schemas import OnlineCheckoutRequest

logger = structlog.get_logger(__name__)

PAYMENT_LABELS = {"cod": "Cash on Delivery", "online": "Paid online"}


class CheckoutService:
    """Entry point for both payment paths; side effects go to the outbox only."""

    def __init__(self, settings: Settings, dispatcher: NotificationDispatcher, session_factory: async_sessionmaker):
        self.settings = settings
        self.dispatcher = dispatcher
        self.session_factory = session_factory

    async def place_cod_order(self, db: AsyncSession, data: OrderCreate, outbox: BackgroundTasks):
        if data.payment_method != "cod":
            raise ValidationError("Use the online checkout for gateway payments")
        with settlement_checkout_duration_seconds.labels(payment_method="cod").time():
            order, created = await OrderLedger.create_order(db, data, self.settings)
        if created:
            await self._schedule_side_effects(db, order, data, outbox)
        return order, created

    async def start_online_payment(self, db: AsyncSession, data: GatewayOrderCreate, client: RazorpayClient):
        return await GatewayOrderService.create(db, data, self.settings, client)

    async def place_online_order(self, db: AsyncSession, payload: OnlineCheckoutRequest, outbox: BackgroundTasks):
        if payload.order is None:
            raise ValidationError("Missing order details", code="missing_payment_fields")
        if payload.order.payment_method != "online":
            raise ValidationError("Use the cash-on-delivery checkout for COD orders", code="wrong_payment_method")

        # Raises before anything is written: no order exists for an unverified payment
        ensure_payment_signature(
            payload.gateway_order_id,
            payload.gateway_payment_id,
            payload.signature,
            self.settings.razorpay_secret_key,
        )
        await GatewayOrderService.ensure_matches(
            db, payload.gateway_order_id, payload.order.store_id, payload.order.total_price
        )
        gateway = GatewayPayment(
            gateway_order_id=payload.gateway_order_id,
            gateway_payment_id=payload.gateway_payment_id,
            signature=payload.signature,
        )
        with settlement_checkout_duration_seconds.labels(payment_method="online").time():
            order, created = await OrderLedger.create_order(db, payload.order, self.settings, gateway=gateway)
        await GatewayOrderService.mark_captured(db, gateway.gateway_order_id, gateway.gateway_payment_id)
        if created:
            await self._schedule_side_effects(db, order, payload.order, outbox)
        return order, created

    async def _schedule_side_effects(self, db: AsyncSession, order: Order, data: OrderCreate, outbox: BackgroundTasks):
        if data.referral_session_id:
            outbox.add_task(
                ReferralService.attribute_order, self.session_factory, data.referral_session_id, order.id
            )

        store = await StoreRepository.get_store(db, order.store_id)
        event = NotificationEvent(
            event_type="order_placed",
            recipient_email=order.buyer_email,
            reference_id=order.id,
            fields={
                "store_name": store.name if store else "",
                "buyer_name": order.buyer_name,
                "total_price": str(order.total_price),
                "payment_label": PAYMENT_LABELS[order.payment_method],
                "items": [
                    {"name": item.name, "quantity": item.quantity, "price": str(item.price_at_purchase)}
                    for item in data.items
                ],
            },
        )
        outbox.add_task(self.dispatcher.dispatch, event)


def get_checkout_service(
    settings: Settings = Depends(get_settings),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> CheckoutService:
    return CheckoutService(settings, dispatcher, session_factory)
