# venue_booking/models/agent_action.py
import uuid
from sqlalchemy import Column, DateTime, ForeignKey, JSON, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from venue_booking.db.base_class import Base


class AgentAction(Base):
    """An item in the venue owner's queue raised by the booking agent."""

    __tablename__ = "agent_actions"

    id = Column(
        String, primary_key=True, default=lambda: f"aga_{uuid.uuid4().hex[:12]}"
    )
    conversation_id = Column(
        String, ForeignKey("agent_conversations.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    venue_id = Column(
        String, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_id = Column(String, nullable=True)
    action_type = Column(String, nullable=False)  # booking_approval, escalation
    # pending, approved, declined, modified
    status = Column(String, nullable=False, server_default="pending", default="pending")
    summary = Column(JSON, nullable=False, default=dict)
    owner_response = Column(JSON, nullable=True)
    booking_request_id = Column(
        String, ForeignKey("booking_requests.id", ondelete="SET NULL"), nullable=True
    )
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    conversation = relationship("AgentConversation", back_populates="actions")
    venue = relationship("Venue")
    booking_request = relationship("BookingRequest")
