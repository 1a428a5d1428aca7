from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from .models import GatewayOrder

class GatewayOrderRepository:
    @staticmethod
    async def create(db: AsyncSession, gateway_order: GatewayOrder):
        db.add(gateway_order)
        await db.commit()
        return gateway_order

    @staticmethod
    async def get(db: AsyncSession, gateway_order_id: str):
        result = await db.execute(
            select(GatewayOrder)
            .where(GatewayOrder.id == gateway_order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def transition(db: AsyncSession, gateway_order_id: str, from_statuses: tuple, **values):
        """Status change guarded by the current status; returns rows changed."""
        result = await db.execute(
            update(GatewayOrder)
            .where(GatewayOrder.id == gateway_order_id, GatewayOrder.status.in_(from_statuses))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount
