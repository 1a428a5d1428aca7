from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.security import limiter, checkout_rate_limit
from settlement.order_service.schemas import OrderCreate, OrderResponse
from settlement.payment_service.gateway import RazorpayClient, get_gateway_client
from settlement.payment_service.schemas import GatewayOrderCreate, GatewayOrderResponse
from .schemas import OnlineCheckoutRequest
from .service import CheckoutService, get_checkout_service

# Public: buyers are anonymous, so checkout is throttled per client instead
public_router = APIRouter()

@public_router.post("/cod", response_model=OrderResponse, status_code=201)
@limiter.limit(checkout_rate_limit)
async def cod_checkout(
    request: Request,                          # REQUIRED: slowapi needs this to check IP/Headers
    payload: OrderCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    order, _ = await checkout.place_cod_order(db, payload, background_tasks)
    return order

@public_router.post("/online/order", response_model=GatewayOrderResponse, status_code=201)
@limiter.limit(checkout_rate_limit)
async def start_online_payment(
    request: Request,
    payload: GatewayOrderCreate,
    db: AsyncSession = Depends(get_db),
    checkout: CheckoutService = Depends(get_checkout_service),
    client: RazorpayClient = Depends(get_gateway_client),
):
    return await checkout.start_online_payment(db, payload, client)

@public_router.post("/online", response_model=OrderResponse, status_code=201)
@limiter.limit(checkout_rate_limit)
async def online_checkout(
    request: Request,
    response: Response,
    payload: OnlineCheckoutRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    order, created = await checkout.place_online_order(db, payload, background_tasks)
    if not created:
        # Replay of an already-recorded payment: same order, not a new one
        response.status_code = 200
    return order
