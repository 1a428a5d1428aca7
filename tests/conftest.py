import os

os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("METRICS_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import hashlib
import hmac
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import NullPool

import main
from shared.config.database import Base, build_engine, get_session_factory
from shared.config.settings import Settings, get_settings
from settlement.order_service.models import Order
from settlement.order_service.schemas import OrderCreate
from settlement.payment_service.models import GatewayOrder
from settlement.seller_service.models import BankDetail, Store

GATEWAY_SECRET = "rzp_test_secret_key"
WEBHOOK_SECRET = "rzp_webhook_secret"
API_KEY = "internal-test-key"

# Monday; its settlement week runs Sunday 2026-10-18 .. Saturday 2026-10-24
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def sign(gateway_order_id: str, gateway_payment_id: str, secret: str = GATEWAY_SECRET) -> str:
    body = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


@pytest.fixture
def settings():
    return Settings(
        razorpay_secret_key=GATEWAY_SECRET,
        razorpay_webhook_secret=WEBHOOK_SECRET,
        internal_api_key=API_KEY,
        ledger_compensation_retries=2,
        ledger_compensation_delay=0,
    )


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'settlement.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory, settings):
    main.app.dependency_overrides[get_session_factory] = lambda: session_factory
    main.app.dependency_overrides[get_settings] = lambda: settings
    transport = ASGITransport(app=main.app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Internal-API-Key": API_KEY},
    ) as ac:
        yield ac
    main.app.dependency_overrides.clear()


@pytest.fixture
def make_store(db):
    async def _make(seller_id=None, name="Demo Store", business_email="seller@example.com"):
        store = Store(
            id=str(uuid.uuid4()),
            seller_id=seller_id or str(uuid.uuid4()),
            name=name,
            business_email=business_email,
        )
        db.add(store)
        await db.commit()
        return store
    return _make


@pytest.fixture
def make_bank_detail(db):
    async def _make(seller_id, payout_method="bank_transfer"):
        detail = BankDetail(
            seller_id=seller_id,
            account_holder_name="Asha Rao",
            bank_name="HDFC Bank",
            account_number="50100123456789",
            ifsc_code="HDFC0001234",
            alias_id="asha@okhdfc" if payout_method == "alias_transfer" else None,
            payout_method=payout_method,
        )
        db.add(detail)
        await db.commit()
        return detail
    return _make


@pytest.fixture
def make_gateway_order(db):
    """Records a gateway order as if the storefront had started an online payment."""
    async def _make(store_id, total="1999.00", gateway_order_id="order_N1", status="created"):
        amount = Decimal(total)
        gateway_order = GatewayOrder(
            id=gateway_order_id,
            store_id=store_id,
            amount=amount,
            amount_paise=int(amount * 100),
            currency="INR",
            receipt=f"SHOPZAP_TEST_{gateway_order_id}",
            is_test=True,
            status=status,
        )
        db.add(gateway_order)
        await db.commit()
        return gateway_order
    return _make


@pytest.fixture
def make_delivered_order(db):
    """Writes a delivered order directly, bypassing checkout."""
    async def _make(store, total="5000.00", days_ago=8, status="delivered"):
        delivered_at = NOW - timedelta(days=days_ago)
        order = Order(
            id=str(uuid.uuid4()),
            store_id=store.id,
            buyer_name="Buyer",
            buyer_email="buyer@example.com",
            total_price=Decimal(total),
            payment_method="cod",
            payment_status="paid",
            status=status,
            delivered_at=delivered_at,
            created_at=delivered_at - timedelta(days=3),
            updated_at=delivered_at,
        )
        db.add(order)
        await db.commit()
        return order
    return _make


def order_payload(store_id, total="1999.00", payment_method="cod", items=None, **extra) -> dict:
    if items is None:
        items = [{
            "product_id": "5f0c2b52-3c3e-4c59-9d8f-0d2d1f5a6b11",
            "quantity": 1,
            "price_at_purchase": total,
            "name": "Wireless Earbuds",
            "image": "https://placehold.co/80x80",
        }]
    payload = {
        "store_id": store_id,
        "buyer_name": "Priya Sharma",
        "buyer_email": "priya@example.com",
        "buyer_phone": "+919800000000",
        "buyer_address": "12 MG Road, Bengaluru, KA 560001",
        "total_price": total,
        "payment_method": payment_method,
        "items": items,
    }
    payload.update(extra)
    return payload


@pytest.fixture
def order_request():
    def _build(store_id, **kwargs) -> OrderCreate:
        return OrderCreate.model_validate(order_payload(store_id, **kwargs))
    return _build
