# venue_booking/crud/crud_venue.py
import logging
from typing import Optional, List
from datetime import date
from sqlalchemy import func
from sqlalchemy.orm import Session

from venue_booking.models.venue import Venue, VenueBlockedDate, VenuePackage
from venue_booking.models.venue_agent_config import VenueAgentConfig

logger = logging.getLogger(__name__)


def get(db: Session, venue_id: str) -> Optional[Venue]:
    return db.query(Venue).filter(Venue.id == venue_id).first()


def get_published(db: Session, venue_id: str) -> Optional[Venue]:
    return (
        db.query(Venue)
        .filter(Venue.id == venue_id, Venue.status == "published")
        .first()
    )


def get_agent_config(db: Session, venue_id: str) -> Optional[VenueAgentConfig]:
    return (
        db.query(VenueAgentConfig)
        .filter(VenueAgentConfig.venue_id == venue_id)
        .first()
    )


def get_active_packages(db: Session, venue_id: str) -> List[VenuePackage]:
    return (
        db.query(VenuePackage)
        .filter(VenuePackage.venue_id == venue_id, VenuePackage.is_active.is_(True))
        .order_by(VenuePackage.name)
        .all()
    )


def get_package(db: Session, *, venue_id: str, package_id: Optional[str] = None,
                name: Optional[str] = None) -> Optional[VenuePackage]:
    """Active package by id, or by case-insensitive name."""
    query = db.query(VenuePackage).filter(
        VenuePackage.venue_id == venue_id, VenuePackage.is_active.is_(True)
    )
    if package_id:
        return query.filter(VenuePackage.id == package_id).first()
    if name:
        return query.filter(func.lower(VenuePackage.name) == name.strip().lower()).first()
    return None


def get_blocked_dates(
    db: Session, *, venue_id: str, start: date, end: date
) -> List[VenueBlockedDate]:
    return (
        db.query(VenueBlockedDate)
        .filter(
            VenueBlockedDate.venue_id == venue_id,
            VenueBlockedDate.blocked_date >= start,
            VenueBlockedDate.blocked_date <= end,
        )
        .order_by(VenueBlockedDate.blocked_date)
        .all()
    )


def get_blocked_date(db: Session, *, venue_id: str, on: date) -> Optional[VenueBlockedDate]:
    return (
        db.query(VenueBlockedDate)
        .filter(VenueBlockedDate.venue_id == venue_id, VenueBlockedDate.blocked_date == on)
        .first()
    )
