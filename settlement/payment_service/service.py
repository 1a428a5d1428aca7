import json
import uuid
from decimal import Decimal, ROUND_HALF_UP

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.settings import Settings
from shared.errors import (
    NotFoundError,
    PaymentConfigurationError,
    PaymentMismatch,
    SecurityError,
    ValidationError,
)
from shared.observability import settlement_signature_failures_total
from settlement.order_service.repository import OrderRepository
from settlement.seller_service.repository import StoreRepository
from .gateway import RazorpayClient
from .models import GatewayOrder
from .repository import GatewayOrderRepository
from .schemas import GatewayOrderCreate, GatewayOrderResponse, WebhookEvent, WebhookAck
from .verifier import verify_webhook_signature

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def to_paise(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class GatewayOrderService:
    @staticmethod
    async def create(db: AsyncSession, data: GatewayOrderCreate, settings: Settings, client: RazorpayClient) -> GatewayOrderResponse:
        """Asks the gateway to collect total_price for a store and records the amount."""
        store = await StoreRepository.get_store(db, data.store_id)
        if store is None:
            raise NotFoundError(f"Store {data.store_id} not found", code="store_not_found")

        is_test = settings.is_test_mode
        amount = Decimal(data.total_price).quantize(CENT)
        amount_paise = to_paise(amount)
        receipt = f"{'SHOPZAP_TEST_' if is_test else 'SHOPZAP_'}{uuid.uuid4().hex[:16]}"
        body = await client.create_order(
            amount_paise,
            receipt,
            notes={
                "store_id": data.store_id,
                "test_mode": "true" if is_test else "false",
                "environment": "test" if is_test else "production",
            },
        )

        gateway_order = await GatewayOrderRepository.create(db, GatewayOrder(
            id=body["id"],
            store_id=data.store_id,
            amount=amount,
            amount_paise=amount_paise,
            currency=settings.currency,
            receipt=receipt,
            is_test=is_test,
            status="created",
        ))
        logger.info(
            "gateway_order_created",
            gateway_order_id=gateway_order.id,
            store_id=data.store_id,
            amount=str(amount),
            is_test=is_test,
        )
        return GatewayOrderResponse(
            gateway_order_id=gateway_order.id,
            key_id=settings.razorpay_key_id,
            amount=amount,
            amount_paise=amount_paise,
            currency=gateway_order.currency,
            receipt=receipt,
            is_test=is_test,
        )

    @staticmethod
    async def ensure_matches(db: AsyncSession, gateway_order_id: str, store_id: str, total_price: Decimal) -> GatewayOrder:
        """A verified payment only pays for the amount its gateway order was created with."""
        gateway_order = await GatewayOrderRepository.get(db, gateway_order_id)
        if gateway_order is None:
            logger.critical("gateway_order_unknown", gateway_order_id=gateway_order_id)
            raise PaymentMismatch(
                "Payment does not match any order started at checkout",
                code="unknown_gateway_order",
            )
        if gateway_order.store_id != store_id or to_paise(total_price) != gateway_order.amount_paise:
            logger.critical(
                "gateway_amount_mismatch",
                gateway_order_id=gateway_order_id,
                expected_amount=str(gateway_order.amount),
                claimed_amount=str(total_price),
            )
            raise PaymentMismatch("Paid amount does not match the order total")
        return gateway_order

    @staticmethod
    async def mark_captured(db: AsyncSession, gateway_order_id: str, gateway_payment_id: str) -> bool:
        changed = await GatewayOrderRepository.transition(
            db, gateway_order_id, ("created", "failed"),
            status="captured", gateway_payment_id=gateway_payment_id,
        )
        if changed:
            logger.info("gateway_order_captured", gateway_order_id=gateway_order_id, gateway_payment_id=gateway_payment_id)
        return bool(changed)

    @staticmethod
    async def mark_failed(db: AsyncSession, gateway_order_id: str) -> bool:
        """Only an uncaptured order can fail; a captured one is never downgraded."""
        changed = await GatewayOrderRepository.transition(db, gateway_order_id, ("created",), status="failed")
        if changed:
            logger.warning("gateway_order_failed", gateway_order_id=gateway_order_id)
        return bool(changed)


class PaymentWebhookService:
    @staticmethod
    def authenticate(raw_body: bytes, signature: str | None, settings: Settings) -> WebhookEvent:
        if not settings.razorpay_webhook_secret:
            logger.error("webhook_secret_missing")
            raise PaymentConfigurationError("Webhook verification is not configured")
        if not verify_webhook_signature(raw_body, signature, settings.razorpay_webhook_secret):
            logger.critical("webhook_signature_mismatch", body_length=len(raw_body))
            settlement_signature_failures_total.labels(source="webhook").inc()
            raise SecurityError("Invalid webhook signature", code="invalid_webhook_signature")
        try:
            return WebhookEvent.model_validate(json.loads(raw_body))
        except ValueError as e:
            raise ValidationError(f"Malformed webhook body: {e}") from e

    @staticmethod
    async def handle(db: AsyncSession, event: WebhookEvent) -> WebhookAck:
        payment = event.payment_entity()
        gateway_order_id = payment.get("order_id")
        ack = WebhookAck(event=event.event, gateway_order_id=gateway_order_id)

        if not gateway_order_id or event.event not in ("payment.captured", "payment.failed"):
            logger.info("webhook_ignored", webhook_event=event.event)
            return ack

        gateway_order = await GatewayOrderRepository.get(db, gateway_order_id)
        if gateway_order is None:
            logger.info("webhook_unknown_order", webhook_event=event.event, gateway_order_id=gateway_order_id)
            return ack

        if event.event == "payment.captured":
            await GatewayOrderService.mark_captured(db, gateway_order_id, payment.get("id"))
        else:
            await GatewayOrderService.mark_failed(db, gateway_order_id)

        gateway_order = await GatewayOrderRepository.get(db, gateway_order_id)
        ack.gateway_status = gateway_order.status

        # A captured order with no ledger order means the buyer never came back from the gateway
        order = await OrderRepository.get_by_gateway_order_id(db, gateway_order_id)
        if order is not None:
            ack.order_id = order.id
        elif gateway_order.status == "captured":
            logger.warning("captured_payment_without_order", gateway_order_id=gateway_order_id)
        return ack
