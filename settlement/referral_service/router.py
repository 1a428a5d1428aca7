from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from .schemas import ReferralCreate, ReferralResponse
from .service import ReferralService

# Public: called from storefront pages when a shared link is opened
public_router = APIRouter()

@public_router.post("/", response_model=ReferralResponse, status_code=201)
async def record_referral(data: ReferralCreate, db: AsyncSession = Depends(get_db)):
    return await ReferralService.record_click(db, data)
