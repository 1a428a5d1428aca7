import uuid
from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from shared.config.database import Base, SCHEMA, utcnow


class PayoutRequest(Base):
    __tablename__ = "payout_requests"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    seller_id = Column(String(36), nullable=False, index=True)
    store_id = Column(String(36), ForeignKey(f"{SCHEMA}.stores.id"), nullable=False)

    total_earned = Column(Numeric(12, 2), nullable=False)
    platform_fee = Column(Numeric(12, 2), nullable=False)
    final_amount = Column(Numeric(12, 2), nullable=False)

    status = Column(String, nullable=False, default="pending", index=True) # pending, approved, paid, rejected
    week_start_date = Column(Date, nullable=False)
    week_end_date = Column(Date, nullable=False)

    paid_at = Column(DateTime(timezone=True), nullable=True)
    paid_by = Column(String, nullable=True)
    admin_notes = Column(Text, nullable=True)
    proof_url = Column(String, nullable=True) # transfer screenshot / UTR receipt

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    claims = relationship("PayoutOrder", lazy="selectin", cascade="all, delete-orphan")

    @property
    def order_ids(self) -> list[str]:
        return [claim.order_id for claim in self.claims]


class PayoutOrder(Base):
    """Membership of an order in a payout. order_id is unique: an order is paid out at most once."""
    __tablename__ = "payout_orders"
    __table_args__ = {"schema": SCHEMA}

    id = Column(Integer, primary_key=True, index=True)
    payout_request_id = Column(String(36), ForeignKey(f"{SCHEMA}.payout_requests.id"), nullable=False, index=True)
    order_id = Column(String(36), ForeignKey(f"{SCHEMA}.orders.id"), nullable=False, unique=True)


class PayoutLog(Base):
    __tablename__ = "payout_logs"
    __table_args__ = {"schema": SCHEMA}

    id = Column(Integer, primary_key=True, index=True)
    payout_request_id = Column(String(36), ForeignKey(f"{SCHEMA}.payout_requests.id"), nullable=False, index=True)
    action = Column(String, nullable=False) # auto_generated, marked_as_paid, rejected
    performed_by = Column(String, nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
