# venue_booking/models/venue.py
import uuid
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, JSON, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from venue_booking.db.base_class import Base


class Venue(Base):
    __tablename__ = "venues"

    id = Column(
        String, primary_key=True, default=lambda: f"ven_{uuid.uuid4().hex[:12]}"
    )
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    area = Column(String, nullable=True)
    city = Column(String, nullable=True)
    address = Column(String, nullable=True)

    # Capacity
    capacity_standing = Column(Integer, nullable=True)
    capacity_seated = Column(Integer, nullable=True)
    capacity_conference = Column(Integer, nullable=True)
    min_guests = Column(Integer, nullable=False, server_default="1", default=1)
    max_guests = Column(Integer, nullable=True)

    amenities = Column(JSON, nullable=False, default=list)
    venue_types = Column(JSON, nullable=False, default=list)

    # Price tiers in whole SEK, 0 or NULL means "not offered"
    price_per_hour = Column(Integer, nullable=True)
    price_half_day = Column(Integer, nullable=True)
    price_full_day = Column(Integer, nullable=True)
    price_evening = Column(Integer, nullable=True)
    price_notes = Column(Text, nullable=True)

    contact_email = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    website = Column(String, nullable=True)

    status = Column(String, nullable=False, server_default="draft", default="draft")  # draft, published

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    blocked_dates = relationship(
        "VenueBlockedDate", back_populates="venue", cascade="all, delete-orphan"
    )
    packages = relationship(
        "VenuePackage", back_populates="venue", cascade="all, delete-orphan"
    )
    agent_config = relationship(
        "VenueAgentConfig", back_populates="venue", uselist=False,
        cascade="all, delete-orphan"
    )

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    @property
    def max_capacity(self) -> int | None:
        """Explicit max_guests, else the largest configured capacity."""
        if self.max_guests:
            return self.max_guests
        capacities = [
            c for c in (
                self.capacity_standing, self.capacity_seated, self.capacity_conference
            ) if c
        ]
        return max(capacities) if capacities else None


class VenueBlockedDate(Base):
    __tablename__ = "venue_blocked_dates"

    id = Column(
        String, primary_key=True, default=lambda: f"vbd_{uuid.uuid4().hex[:12]}"
    )
    venue_id = Column(
        String, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    blocked_date = Column(Date, nullable=False)
    reason = Column(String, nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    venue = relationship("Venue", back_populates="blocked_dates")

    __table_args__ = (
        UniqueConstraint("venue_id", "blocked_date", name="uq_venue_blocked_date"),
    )


class VenuePackage(Base):
    __tablename__ = "venue_packages"

    id = Column(
        String, primary_key=True, default=lambda: f"vpk_{uuid.uuid4().hex[:12]}"
    )
    venue_id = Column(
        String, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price_per_person = Column(Integer, nullable=True)
    base_price = Column(Integer, nullable=True)
    min_guests = Column(Integer, nullable=True)
    max_guests = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")

    venue = relationship("Venue", back_populates="packages")
