from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from settlement.order_service.models import Order
from settlement.seller_service.models import Store
from .models import PayoutRequest, PayoutOrder, PayoutLog

class PayoutRepository:
    @staticmethod
    async def find_eligible_orders(db: AsyncSession, cutoff: datetime):
        """
        Delivered orders whose eligibility window closed before cutoff and
        that no payout has claimed yet, with the owning seller.
        Returns plain rows, not ORM objects.
        """
        claimed = select(PayoutOrder.order_id)
        delivered_at = func.coalesce(Order.delivered_at, Order.updated_at)
        result = await db.execute(
            select(Order.id, Order.total_price, Order.store_id, Store.seller_id)
            .join(Store, Store.id == Order.store_id)
            .where(
                Order.status == "delivered",
                delivered_at <= cutoff,
                Order.id.not_in(claimed),
            )
            .order_by(Order.created_at, Order.id)
        )
        return result.all()

    @staticmethod
    async def create_payout(db: AsyncSession, payout: PayoutRequest, log: PayoutLog):
        db.add(payout)
        db.add(log)
        await db.commit()
        return payout

    @staticmethod
    async def get_payout(db: AsyncSession, payout_id: str):
        result = await db.execute(
            select(PayoutRequest)
            .where(PayoutRequest.id == payout_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def list_payouts(db: AsyncSession, status: str | None = None):
        stmt = select(PayoutRequest).order_by(PayoutRequest.created_at.desc())
        if status:
            stmt = stmt.where(PayoutRequest.status == status)
        result = await db.execute(stmt)
        return result.scalars().all()

    @staticmethod
    async def transition(db: AsyncSession, payout_id: str, from_status: str, **values):
        """Status change guarded by the current status. Not committed; returns rows changed."""
        result = await db.execute(
            update(PayoutRequest)
            .where(PayoutRequest.id == payout_id, PayoutRequest.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def add_log(db: AsyncSession, log: PayoutLog):
        db.add(log)

    @staticmethod
    async def get_logs(db: AsyncSession, payout_id: str):
        result = await db.execute(
            select(PayoutLog).where(PayoutLog.payout_request_id == payout_id).order_by(PayoutLog.id)
        )
        return result.scalars().all()
