import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

PaymentMethod = Literal["cod", "online"]
OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]


class OrderItemCreate(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    price_at_purchase: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    name: str = ""
    image: Optional[str] = None

    @field_validator("product_id")
    @classmethod
    def must_be_catalog_id(cls, value: str) -> str:
        # Malformed references are rejected here; nothing downstream invents an id
        try:
            return str(uuid.UUID(value))
        except (ValueError, AttributeError, TypeError):
            raise ValueError("product_id must be a catalog product UUID")


class OrderCreate(BaseModel):
    store_id: str
    buyer_name: str = Field(min_length=1)
    buyer_email: Optional[str] = None
    buyer_phone: Optional[str] = None
    buyer_address: Optional[str] = None
    total_price: Decimal = Field(max_digits=12, decimal_places=2)
    payment_method: PaymentMethod
    items: List[OrderItemCreate]
    referral_session_id: Optional[str] = None


class GatewayPayment(BaseModel):
    """Correlation fields of an already-verified gateway payment."""
    gateway_order_id: str
    gateway_payment_id: str
    signature: str
    gateway: str = "razorpay"


class OrderItemResponse(BaseModel):
    product_id: str
    quantity: int
    price_at_purchase: Decimal
    name: Optional[str]
    image: Optional[str]

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: str
    store_id: str
    buyer_name: str
    buyer_email: Optional[str]
    buyer_phone: Optional[str]
    buyer_address: Optional[str]
    total_price: Decimal
    payment_method: str
    payment_status: str
    status: str
    payment_gateway: Optional[str]
    gateway_order_id: Optional[str]
    gateway_payment_id: Optional[str]
    is_test: bool
    paid_at: Optional[datetime]
    delivered_at: Optional[datetime]
    created_at: Optional[datetime]
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
