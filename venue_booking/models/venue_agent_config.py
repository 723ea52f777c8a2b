# venue_booking/models/venue_agent_config.py
import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from venue_booking.db.base_class import Base


class VenueAgentConfig(Base):
    """Owner-tunable behaviour of the booking agent for one venue."""

    __tablename__ = "venue_agent_configs"

    id = Column(
        String, primary_key=True, default=lambda: f"vac_{uuid.uuid4().hex[:12]}"
    )
    venue_id = Column(
        String, ForeignKey("venues.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    is_enabled = Column(Boolean, nullable=False, default=True, server_default="1")
    tone = Column(String, nullable=True)  # e.g. "vänlig", "formell"
    custom_instructions = Column(Text, nullable=True)
    pricing_notes = Column(Text, nullable=True)
    minimum_spend = Column(Integer, nullable=True)
    house_rules = Column(Text, nullable=True)
    # [{"question": ..., "answer": ...}]
    faq_entries = Column(JSON, nullable=False, default=list)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    venue = relationship("Venue", back_populates="agent_config")
