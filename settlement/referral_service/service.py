import uuid
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from .models import Referral
from .repository import ReferralRepository
from .schemas import ReferralCreate

logger = structlog.get_logger(__name__)

class ReferralService:
    @staticmethod
    async def record_click(db: AsyncSession, data: ReferralCreate):
        session_id = data.session_id or str(uuid.uuid4())
        existing = await ReferralRepository.get_by_session(db, session_id)
        if existing:
            return existing
        referral = Referral(session_id=session_id, store_id=data.store_id, source=data.source)
        return await ReferralRepository.create(db, referral)

    @staticmethod
    async def attribute_order(session_factory: async_sessionmaker, session_id: str, order_id: str) -> bool:
        """
        Best-effort link of a referral session to a created order.

        Runs as a background task with its own session. Any failure is logged
        and swallowed: the order it refers to is already committed.
        """
        if not session_id:
            return False
        try:
            async with session_factory() as db:
                changed = await ReferralRepository.mark_converted(db, session_id, order_id)
        except Exception as e:
            logger.warning("referral_attribution_failed", session_id=session_id, order_id=order_id, error=str(e))
            return False

        if changed:
            logger.info("referral_converted", session_id=session_id, order_id=order_id)
        else:
            logger.info("referral_not_attributed", session_id=session_id, order_id=order_id)
        return bool(changed)
