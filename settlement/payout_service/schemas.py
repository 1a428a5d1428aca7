from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from settlement.seller_service.schemas import BankDetailView


class PayoutRequestResponse(BaseModel):
    id: str
    seller_id: str
    store_id: str
    total_earned: Decimal
    platform_fee: Decimal
    final_amount: Decimal
    order_ids: List[str]
    status: str
    week_start_date: date
    week_end_date: date
    paid_at: Optional[datetime]
    paid_by: Optional[str]
    admin_notes: Optional[str]
    proof_url: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class PayoutAdminView(PayoutRequestResponse):
    """Payout plus a read-only, masked view of where the money goes."""
    store_name: Optional[str] = None
    bank_details: Optional[BankDetailView] = None


class PayoutLogResponse(BaseModel):
    action: str
    performed_by: str
    details: Optional[Dict[str, Any]]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class MarkPaidRequest(BaseModel):
    paid_by: str = Field(min_length=1)
    proof_url: Optional[str] = None
    admin_notes: Optional[str] = None


class RejectPayoutRequest(BaseModel):
    rejected_by: str = Field(min_length=1)
    admin_notes: Optional[str] = None


class GenerationReport(BaseModel):
    week_start_date: date
    week_end_date: date
    eligible_orders: int = 0
    payouts_created: int = 0
    created: List[PayoutRequestResponse] = []
    failed_sellers: List[str] = []
