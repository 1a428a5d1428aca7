from sqlalchemy import Column, String, Numeric, DateTime, Boolean, Integer
from shared.config.database import Base, SCHEMA, utcnow


class GatewayOrder(Base):
    """The amount the gateway was asked to collect, recorded before the buyer pays."""
    __tablename__ = "gateway_orders"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String, primary_key=True) # gateway's own order id, e.g. order_N1abc
    store_id = Column(String(36), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False) # rupees
    amount_paise = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    receipt = Column(String, nullable=False)
    is_test = Column(Boolean, nullable=False, default=False)

    status = Column(String, nullable=False, default="created") # created, captured, failed
    gateway_payment_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
