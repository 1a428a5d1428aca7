from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from shared.config.database import utcnow
from .models import Referral

class ReferralRepository:
    @staticmethod
    async def create(db: AsyncSession, referral: Referral):
        db.add(referral)
        await db.commit()
        await db.refresh(referral)
        return referral

    @staticmethod
    async def get_by_session(db: AsyncSession, session_id: str):
        result = await db.execute(select(Referral).where(Referral.session_id == session_id))
        return result.scalars().first()

    @staticmethod
    async def mark_converted(db: AsyncSession, session_id: str, order_id: str):
        """Only an unconverted referral is attributed; returns rows changed."""
        result = await db.execute(
            update(Referral)
            .where(Referral.session_id == session_id, Referral.order_id.is_(None))
            .values(order_id=order_id, status="converted", converted_at=utcnow())
        )
        await db.commit()
        return result.rowcount
