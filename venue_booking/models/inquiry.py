# venue_booking/models/inquiry.py
import uuid
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func
from venue_booking.db.base_class import Base


class Inquiry(Base):
    """Lightweight pre-booking question, open to anonymous visitors."""

    __tablename__ = "inquiries"

    id = Column(
        String, primary_key=True, default=lambda: f"inq_{uuid.uuid4().hex[:12]}"
    )
    venue_id = Column(
        String, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String, nullable=True)
    event_date = Column(Date, nullable=True)
    event_type = Column(String, nullable=True)
    guest_count = Column(Integer, nullable=True)
    message = Column(Text, nullable=True)
    # open, linked, closed
    status = Column(String, nullable=False, server_default="open", default="open")
    booking_request_id = Column(String, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
