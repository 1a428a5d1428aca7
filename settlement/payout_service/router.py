from typing import List, Literal, Optional
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.config.settings import Settings, get_settings
from shared.security.dependencies import verify_internal_api_key
from settlement.notification_service.service import NotificationDispatcher, get_dispatcher
from .schemas import (
    GenerationReport,
    MarkPaidRequest,
    PayoutAdminView,
    PayoutLogResponse,
    PayoutRequestResponse,
    RejectPayoutRequest,
)
from .service import PayoutGenerator, PayoutProcessor

# Admin console only
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])

@router.post("/generate", response_model=GenerationReport)
async def generate_payouts(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return await PayoutGenerator.generate(db, settings)

@router.get("/", response_model=List[PayoutAdminView])
async def list_payouts(
    status: Optional[Literal["pending", "approved", "paid", "rejected"]] = None,
    db: AsyncSession = Depends(get_db),
):
    return await PayoutProcessor.list_for_admin(db, status)

@router.get("/{payout_id}", response_model=PayoutAdminView)
async def get_payout(payout_id: str, db: AsyncSession = Depends(get_db)):
    return await PayoutProcessor.get_for_admin(db, payout_id)

@router.get("/{payout_id}/logs", response_model=List[PayoutLogResponse])
async def get_payout_logs(payout_id: str, db: AsyncSession = Depends(get_db)):
    return await PayoutProcessor.get_logs(db, payout_id)

@router.post("/{payout_id}/mark-paid", response_model=PayoutRequestResponse)
async def mark_payout_paid(
    payout_id: str,
    data: MarkPaidRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    payout, event = await PayoutProcessor.mark_paid(db, payout_id, data)
    background_tasks.add_task(dispatcher.dispatch, event)
    return payout

@router.post("/{payout_id}/reject", response_model=PayoutRequestResponse)
async def reject_payout(
    payout_id: str, data: RejectPayoutRequest, db: AsyncSession = Depends(get_db)
):
    return await PayoutProcessor.reject(db, payout_id, data)
