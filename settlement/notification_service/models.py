from sqlalchemy import Column, Integer, String, DateTime, Text
from shared.config.database import Base, SCHEMA, utcnow

class NotificationLog(Base):
    """Audit trail of outbound notifications; the only place their failures surface."""
    __tablename__ = "notification_logs"
    __table_args__ = {"schema": SCHEMA}

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String, nullable=False)
    recipient_email = Column(String, nullable=True)
    reference_id = Column(String(36), nullable=False, index=True) # order or payout id
    status = Column(String, nullable=False) # sent, failed, skipped
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
