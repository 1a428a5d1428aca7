from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.config.settings import Settings, get_settings
from .schemas import WebhookAck
from .service import PaymentWebhookService

# Public: authenticated by the gateway's HMAC signature, not the internal key
public_router = APIRouter()

@public_router.post("/webhook", response_model=WebhookAck)
async def gateway_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    raw_body = await request.body()
    event = PaymentWebhookService.authenticate(raw_body, x_razorpay_signature, settings)
    return await PaymentWebhookService.handle(db, event)
