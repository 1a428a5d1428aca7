from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, update
from .models import Order, OrderItem

class OrderRepository:
    @staticmethod
    async def insert_order(db: AsyncSession, order: Order):
        db.add(order)
        await db.commit()
        return order

    @staticmethod
    async def insert_items(db: AsyncSession, order_id: str, items: list[OrderItem]):
        for item in items:
            item.order_id = order_id
        db.add_all(items)
        await db.commit()
        return items

    @staticmethod
    async def delete_order(db: AsyncSession, order_id: str):
        await db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        await db.execute(delete(Order).where(Order.id == order_id))
        await db.commit()

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str):
        result = await db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_by_gateway_payment_id(db: AsyncSession, gateway_payment_id: str):
        result = await db.execute(
            select(Order)
            .where(Order.gateway_payment_id == gateway_payment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_by_gateway_order_id(db: AsyncSession, gateway_order_id: str):
        result = await db.execute(
            select(Order).where(Order.gateway_order_id == gateway_order_id)
        )
        return result.scalars().first()

    @staticmethod
    async def update_fields(db: AsyncSession, order_id: str, conditions: dict | None = None, **values):
        """Conditional update guarded by current column values; returns rows changed."""
        stmt = update(Order).where(Order.id == order_id)
        for column, expected in (conditions or {}).items():
            stmt = stmt.where(getattr(Order, column) == expected)
        result = await db.execute(stmt.values(**values).execution_options(synchronize_session=False))
        await db.commit()
        return result.rowcount
