from decimal import Decimal
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

class GatewayOrderCreate(BaseModel):
    store_id: str
    total_price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)

class GatewayOrderResponse(BaseModel):
    """What the storefront needs to open the gateway's payment sheet."""
    gateway_order_id: str
    key_id: str
    amount: Decimal
    amount_paise: int
    currency: str
    receipt: str
    is_test: bool

class WebhookEvent(BaseModel):
    event: str
    payload: Dict[str, Any] = {}

    def payment_entity(self) -> Dict[str, Any]:
        return (self.payload.get("payment") or {}).get("entity") or {}

class WebhookAck(BaseModel):
    received: bool = True
    event: str
    gateway_order_id: Optional[str] = None
    gateway_status: Optional[str] = None
    order_id: Optional[str] = None
