from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key
from .schemas import StoreCreate, StoreResponse, BankDetailUpsert, BankDetailView
from .service import SellerService

# Seller dashboard traffic arrives through the authenticated platform gateway
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])

@router.post("/stores", response_model=StoreResponse, status_code=201)
async def register_store(data: StoreCreate, db: AsyncSession = Depends(get_db)):
    return await SellerService.register_store(db, data)

@router.put("/{seller_id}/bank-details", response_model=BankDetailView)
async def upsert_bank_details(
    seller_id: str, data: BankDetailUpsert, db: AsyncSession = Depends(get_db)
):
    detail = await SellerService.upsert_bank_detail(db, seller_id, data)
    return BankDetailView.from_model(detail)

@router.get("/{seller_id}/bank-details", response_model=BankDetailView)
async def get_bank_details(seller_id: str, db: AsyncSession = Depends(get_db)):
    detail = await SellerService.get_bank_detail(db, seller_id)
    return BankDetailView.from_model(detail)
