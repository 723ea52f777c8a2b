# venue_booking/models/booking_request.py
import uuid
from sqlalchemy import (
    Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from venue_booking.db.base_class import Base

ACTIVE_BOOKING_STATUSES = ("pending", "accepted")
_ACTIVE_WHERE = text("status IN ('pending', 'accepted')")


class BookingRequest(Base):
    __tablename__ = "booking_requests"

    id = Column(
        String, primary_key=True, default=lambda: f"bkr_{uuid.uuid4().hex[:12]}"
    )
    venue_id = Column(
        String, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_id = Column(String, nullable=True, index=True)
    inquiry_id = Column(String, ForeignKey("inquiries.id"), nullable=True)

    event_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    event_type = Column(String, nullable=False)
    event_description = Column(Text, nullable=True)
    guest_count = Column(Integer, nullable=False)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=True)
    company_name = Column(String, nullable=True)

    # Whole SEK, always server-computed
    base_price = Column(Integer, nullable=False)
    platform_fee = Column(Integer, nullable=False)
    total_price = Column(Integer, nullable=False)
    venue_payout = Column(Integer, nullable=False)

    # pending, accepted, declined, cancelled, completed, paid_out
    status = Column(String, nullable=False, server_default="pending", default="pending")
    verification_token = Column(String(32), nullable=False, unique=True)
    decline_reason = Column(Text, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    venue = relationship("Venue")
    modifications = relationship(
        "BookingModification", back_populates="booking_request",
        cascade="all, delete-orphan",
        order_by="BookingModification.created_at",
    )

    __table_args__ = (
        # One live claim per venue and date. Two racing inserts cannot both
        # pass this index, whatever the application checked beforehand.
        Index(
            "uq_booking_requests_active_date",
            "venue_id",
            "event_date",
            unique=True,
            postgresql_where=_ACTIVE_WHERE,
            sqlite_where=_ACTIVE_WHERE,
        ),
        Index("ix_booking_requests_venue_status", "venue_id", "status"),
    )
