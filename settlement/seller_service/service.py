import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from shared.errors import NotFoundError, ValidationError
from .models import Store, BankDetail
from .repository import StoreRepository, BankDetailRepository
from .schemas import StoreCreate, BankDetailUpsert

logger = structlog.get_logger(__name__)

class SellerService:
    @staticmethod
    async def register_store(db: AsyncSession, data: StoreCreate):
        store = Store(seller_id=data.seller_id, name=data.name, business_email=data.business_email)
        return await StoreRepository.create_store(db, store)

    @staticmethod
    async def upsert_bank_detail(db: AsyncSession, seller_id: str, data: BankDetailUpsert):
        if data.payout_method == "alias_transfer" and not data.alias_id:
            raise ValidationError("alias_id is required for alias_transfer payouts")

        detail = await BankDetailRepository.get_for_seller(db, seller_id)
        if detail is None:
            detail = BankDetail(seller_id=seller_id)
        for field, value in data.model_dump().items():
            setattr(detail, field, value)

        detail = await BankDetailRepository.save(db, detail)
        logger.info("bank_detail_saved", seller_id=seller_id, payout_method=detail.payout_method)
        return detail

    @staticmethod
    async def get_bank_detail(db: AsyncSession, seller_id: str):
        detail = await BankDetailRepository.get_for_seller(db, seller_id)
        if not detail:
            raise NotFoundError("Bank details not found", code="bank_details_not_found")
        return detail
