from fastapi import FastAPI
from sqlalchemy import text
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import engine, Base, SCHEMA
from shared.errors import register_exception_handlers
from shared.observability import setup_observability
from shared.security import limiter

# IMPORTANT: import models so they register with Base
from settlement.seller_service import models as seller_models
from settlement.order_service import models as order_models
from settlement.payout_service import models as payout_models
from settlement.referral_service import models as referral_models
from settlement.payment_service import models as payment_models
from settlement.notification_service import models as notification_models

from settlement.checkout_service.router import public_router as checkout_router
from settlement.payment_service.router import public_router as payment_router
from settlement.referral_service.router import public_router as referral_router
from settlement.order_service.router import router as order_router
from settlement.payout_service.router import router as payout_router
from settlement.seller_service.router import router as seller_router

app = FastAPI(title="Settlement Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, "settlement_service")

# --- SECURITY SETUP ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

@app.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "settlement", "status": "running"}

app.include_router(checkout_router, prefix="/checkout", tags=["checkout"])
app.include_router(payment_router, prefix="/payments", tags=["payments"])
app.include_router(referral_router, prefix="/referrals", tags=["referrals"])
app.include_router(order_router, prefix="/orders", tags=["orders"])
app.include_router(payout_router, prefix="/payouts", tags=["payouts"])
app.include_router(seller_router, prefix="/sellers", tags=["sellers"])

@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}"))
        await conn.run_sync(Base.metadata.create_all)
