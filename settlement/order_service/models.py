import uuid
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship
from shared.config.database import Base, SCHEMA, utcnow


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(String(36), ForeignKey(f"{SCHEMA}.stores.id"), nullable=False, index=True)

    buyer_name = Column(String, nullable=False)
    buyer_email = Column(String, nullable=True)
    buyer_phone = Column(String, nullable=True)
    buyer_address = Column(Text, nullable=True)

    total_price = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String, nullable=False) # cod, online
    payment_status = Column(String, nullable=False, default="pending") # pending, paid, failed
    status = Column(String, nullable=False, default="pending", index=True) # pending, confirmed, shipped, delivered, cancelled

    # Gateway correlation, online orders only
    payment_gateway = Column(String, nullable=True)
    gateway_order_id = Column(String, nullable=True, index=True)
    gateway_payment_id = Column(String, nullable=True, unique=True)
    gateway_signature = Column(String, nullable=True)

    is_test = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    paid_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = {"schema": SCHEMA}

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(36), ForeignKey(f"{SCHEMA}.orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), nullable=False)
    quantity = Column(Integer, nullable=False)
    price_at_purchase = Column(Numeric(12, 2), nullable=False) # snapshot, never updated
    name = Column(String, nullable=True)
    image = Column(String, nullable=True)

    order = relationship("Order", back_populates="items")
