from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .models import Store, BankDetail

class StoreRepository:
    @staticmethod
    async def get_store(db: AsyncSession, store_id: str):
        result = await db.execute(select(Store).where(Store.id == store_id))
        return result.scalars().first()

    @staticmethod
    async def create_store(db: AsyncSession, store: Store):
        db.add(store)
        await db.commit()
        await db.refresh(store)
        return store

    @staticmethod
    async def get_stores(db: AsyncSession, store_ids: list[str]):
        if not store_ids:
            return {}
        result = await db.execute(select(Store).where(Store.id.in_(store_ids)))
        return {store.id: store for store in result.scalars().all()}


class BankDetailRepository:
    @staticmethod
    async def get_for_seller(db: AsyncSession, seller_id: str):
        result = await db.execute(select(BankDetail).where(BankDetail.seller_id == seller_id))
        return result.scalars().first()

    @staticmethod
    async def save(db: AsyncSession, detail: BankDetail):
        db.add(detail)
        await db.commit()
        await db.refresh(detail)
        return detail

    @staticmethod
    async def get_for_sellers(db: AsyncSession, seller_ids: list[str]):
        if not seller_ids:
            return {}
        result = await db.execute(select(BankDetail).where(BankDetail.seller_id.in_(seller_ids)))
        return {detail.seller_id: detail for detail in result.scalars().all()}
