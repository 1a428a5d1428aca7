from datetime import datetime
from typing import Optional
from pydantic import BaseModel

class ReferralCreate(BaseModel):
    store_id: str
    session_id: Optional[str] = None
    source: Optional[str] = None

class ReferralResponse(BaseModel):
    session_id: str
    store_id: str
    source: Optional[str]
    status: str
    order_id: Optional[str]
    converted_at: Optional[datetime]

    class Config:
        from_attributes = True
