import uuid
from sqlalchemy import Column, String, DateTime
from shared.config.database import Base, SCHEMA, utcnow


class Store(Base):
    """Projection of the catalog's store row: only what settlement needs."""
    __tablename__ = "stores"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    seller_id = Column(String(36), nullable=False, index=True)
    name = Column(String, nullable=False)
    business_email = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class BankDetail(Base):
    __tablename__ = "bank_details"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    seller_id = Column(String(36), nullable=False, unique=True, index=True)
    account_holder_name = Column(String, nullable=False)
    bank_name = Column(String, nullable=False)
    account_number = Column(String, nullable=False)
    ifsc_code = Column(String, nullable=False)
    alias_id = Column(String, nullable=True) # UPI-style id
    payout_method = Column(String, nullable=False, default="bank_transfer") # bank_transfer, alias_transfer
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
