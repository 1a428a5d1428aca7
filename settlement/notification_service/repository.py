from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .models import NotificationLog

class NotificationLogRepository:
    @staticmethod
    async def create(db: AsyncSession, entry: NotificationLog):
        db.add(entry)
        await db.commit()
        return entry

    @staticmethod
    async def list_for_reference(db: AsyncSession, reference_id: str):
        result = await db.execute(
            select(NotificationLog)
            .where(NotificationLog.reference_id == reference_id)
            .order_by(NotificationLog.id)
        )
        return result.scalars().all()
