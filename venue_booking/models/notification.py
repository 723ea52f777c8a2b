# venue_booking/models/notification.py
import uuid
from sqlalchemy import Boolean, Column, DateTime, Index, JSON, String, Text
from sqlalchemy.sql import func
from venue_booking.db.base_class import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(
        String, primary_key=True, default=lambda: f"ntf_{uuid.uuid4().hex[:12]}"
    )
    recipient_id = Column(String, nullable=False)
    category = Column(String, nullable=False)
    headline = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    reference_kind = Column(String, nullable=True)  # booking, inquiry, agent_action
    reference_id = Column(String, nullable=True)
    author_id = Column(String, nullable=True)
    extra = Column(JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False, server_default="0")
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
    )
