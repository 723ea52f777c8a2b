# venue_booking/models/booking_modification.py
import uuid
from sqlalchemy import (
    Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from venue_booking.db.base_class import Base

_PENDING_WHERE = text("status = 'pending'")


class BookingModification(Base):
    __tablename__ = "booking_modifications"

    id = Column(
        String, primary_key=True, default=lambda: f"bkm_{uuid.uuid4().hex[:12]}"
    )
    booking_request_id = Column(
        String, ForeignKey("booking_requests.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    proposed_by = Column(String, nullable=False)
    proposer_role = Column(String, nullable=False)  # customer, owner

    # pending, accepted, declined, cancelled
    status = Column(String, nullable=False, server_default="pending", default="pending")

    proposed_event_date = Column(Date, nullable=True)
    proposed_start_time = Column(String(5), nullable=True)
    proposed_end_time = Column(String(5), nullable=True)
    proposed_guest_count = Column(Integer, nullable=True)
    proposed_base_price = Column(Integer, nullable=True)
    proposed_platform_fee = Column(Integer, nullable=True)
    proposed_total_price = Column(Integer, nullable=True)
    proposed_venue_payout = Column(Integer, nullable=True)

    reason = Column(String(500), nullable=True)
    response_reason = Column(String(500), nullable=True)
    responded_by = Column(String, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    booking_request = relationship("BookingRequest", back_populates="modifications")

    __table_args__ = (
        Index(
            "uq_booking_modifications_pending",
            "booking_request_id",
            unique=True,
            postgresql_where=_PENDING_WHERE,
            sqlite_where=_PENDING_WHERE,
        ),
    )
