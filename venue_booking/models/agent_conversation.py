# venue_booking/models/agent_conversation.py
import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, JSON, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from venue_booking.db.base_class import Base


class AgentConversation(Base):
    __tablename__ = "agent_conversations"

    id = Column(
        String, primary_key=True, default=lambda: f"agc_{uuid.uuid4().hex[:12]}"
    )
    venue_id = Column(
        String, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_id = Column(String, nullable=True, index=True)

    # Ordered list of message dicts, rewritten whole on every turn
    messages = Column(JSON, nullable=False, default=list)
    # Bumped on every write; writers compare-and-swap on it
    version = Column(Integer, nullable=False, default=1, server_default="1")

    # active, waiting_for_owner, completed
    status = Column(String, nullable=False, server_default="active", default="active")
    expires_at = Column(DateTime(timezone=True), nullable=True)

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
    actions = relationship("AgentAction", back_populates="conversation")

    __table_args__ = (
        Index("ix_agent_conversations_customer_venue", "customer_id", "venue_id"),
    )
