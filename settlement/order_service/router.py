from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key
from .schemas import OrderResponse, OrderStatusUpdate
from .service import OrderLedger

# Order reads and fulfilment updates come from the seller dashboard backend
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, db: AsyncSession = Depends(get_db)):
    return await OrderLedger.get_order(db, order_id)

@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str, data: OrderStatusUpdate, db: AsyncSession = Depends(get_db)
):
    return await OrderLedger.update_status(db, order_id, data.status)
