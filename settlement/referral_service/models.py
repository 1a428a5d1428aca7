import uuid
from sqlalchemy import Column, String, DateTime
from shared.config.database import Base, SCHEMA, utcnow

class Referral(Base):
    __tablename__ = "referrals"
    __table_args__ = {"schema": SCHEMA}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String, nullable=False, unique=True, index=True) # anonymous browser session
    store_id = Column(String(36), nullable=False, index=True)
    source = Column(String, nullable=True) # e.g. instagram, whatsapp
    status = Column(String, nullable=False, default="clicked") # clicked, converted
    order_id = Column(String(36), nullable=True)
    converted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
