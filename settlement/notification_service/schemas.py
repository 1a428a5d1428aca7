from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel

EventType = Literal["order_placed", "payout_paid"]

class NotificationEvent(BaseModel):
    event_type: EventType
    recipient_email: Optional[str] = None
    reference_id: str
    fields: Dict[str, Any] = {}
