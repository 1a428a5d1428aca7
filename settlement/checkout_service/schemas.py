from typing import Optional
from pydantic import BaseModel
from settlement.order_service.schemas import OrderCreate

class OnlineCheckoutRequest(BaseModel):
    """
    Gateway confirmation plus the original order request.
    All four parts are required; they are optional here so that a missing one
    is reported as a validation error instead of a verification failure.
    """
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    signature: Optional[str] = None
    order: Optional[OrderCreate] = None
