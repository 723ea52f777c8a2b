# venue_booking/crud/crud_availability.py
"""
Availability gate: the only code path that puts a booking on a venue's
calendar.

Claiming a date and moving a booking to another date both end in a write
that the partial unique index ``uq_booking_requests_active_date`` either
accepts or rejects. The blocked-date lookup before the write only chooses
between the two user-facing refusals; it is not what makes the claim safe.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from venue_booking.core.exceptions import DATE_BLOCKED, DATE_BOOKED
from venue_booking.models.booking_request import BookingRequest, ACTIVE_BOOKING_STATUSES
from venue_booking.models.venue import Venue, VenueBlockedDate

logger = logging.getLogger(__name__)

ALTERNATIVE_SEARCH_DAYS = 30
MAX_ALTERNATIVES = 3


@dataclass
class ClaimResult:
    booking_id: Optional[str] = None
    error_code: Optional[str] = None  # date_blocked, date_booked

    @property
    def ok(self) -> bool:
        return self.booking_id is not None


@dataclass
class DateAvailability:
    available: bool
    reason: Optional[str] = None  # past, date_blocked, date_booked
    blocked_reason: Optional[str] = None


def _lock_venue(db: Session, venue_id: str) -> None:
    # Row lock serialises claims per venue on PostgreSQL. SQLite has no
    # FOR UPDATE and serialises writers on the database file instead.
    db.query(Venue.id).filter(Venue.id == venue_id).with_for_update().first()


def _is_blocked(db: Session, venue_id: str, on: date) -> bool:
    return (
        db.query(VenueBlockedDate.id)
        .filter(VenueBlockedDate.venue_id == venue_id, VenueBlockedDate.blocked_date == on)
        .first()
        is not None
    )


def claim(
    db: Session,
    *,
    venue_id: str,
    event_date: date,
    booking_fields: Dict[str, Any],
) -> ClaimResult:
    """
    Check-and-claim ``venue_id`` on ``event_date`` in one transaction.

    Inserts a pending BookingRequest and commits, or rolls back and returns
    ``date_blocked`` / ``date_booked``. Never retried here; both refusals are
    final for this input.
    """
    try:
        _lock_venue(db, venue_id)
        if _is_blocked(db, venue_id, event_date):
            db.rollback()
            return ClaimResult(error_code=DATE_BLOCKED)

        booking = BookingRequest(
            venue_id=venue_id,
            event_date=event_date,
            status="pending",
            **booking_fields,
        )
        db.add(booking)
        db.flush()
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Claim lost for venue={venue_id} date={event_date}: date already booked")
        return ClaimResult(error_code=DATE_BOOKED)

    logger.info(f"Claimed venue={venue_id} date={event_date} booking={booking.id}")
    return ClaimResult(booking_id=booking.id)


def move_claim(db: Session, *, booking: BookingRequest, new_date: date) -> Optional[str]:
    """
    Move an active booking to ``new_date`` inside the caller's transaction.

    Flushes but does not commit. Returns None on success or the conflict
    code; on conflict the session has been rolled back.
    """
    if booking.event_date == new_date:
        return None
    try:
        _lock_venue(db, booking.venue_id)
        if _is_blocked(db, booking.venue_id, new_date):
            db.rollback()
            return DATE_BLOCKED
        booking.event_date = new_date
        db.flush()
    except IntegrityError:
        db.rollback()
        return DATE_BOOKED
    return None


def check_date(db: Session, *, venue_id: str, on: date, today: Optional[date] = None) -> DateAvailability:
    """Read-only availability answer for one date."""
    today = today or date.today()
    if on < today:
        return DateAvailability(available=False, reason="past")

    blocked = (
        db.query(VenueBlockedDate)
        .filter(VenueBlockedDate.venue_id == venue_id, VenueBlockedDate.blocked_date == on)
        .first()
    )
    if blocked:
        return DateAvailability(
            available=False, reason=DATE_BLOCKED, blocked_reason=blocked.reason
        )

    booked = (
        db.query(BookingRequest.id)
        .filter(
            BookingRequest.venue_id == venue_id,
            BookingRequest.event_date == on,
            BookingRequest.status.in_(ACTIVE_BOOKING_STATUSES),
        )
        .first()
    )
    if booked:
        return DateAvailability(available=False, reason=DATE_BOOKED)
    return DateAvailability(available=True)


def unavailable_dates(db: Session, venue_ids: List[str], start: date, end: date) -> Dict[str, Set[date]]:
    taken: Dict[str, Set[date]] = {venue_id: set() for venue_id in venue_ids}

    blocked_rows = (
        db.query(VenueBlockedDate.venue_id, VenueBlockedDate.blocked_date)
        .filter(
            VenueBlockedDate.venue_id.in_(venue_ids),
            VenueBlockedDate.blocked_date >= start,
            VenueBlockedDate.blocked_date <= end,
        )
        .all()
    )
    booked_rows = (
        db.query(BookingRequest.venue_id, BookingRequest.event_date)
        .filter(
            BookingRequest.venue_id.in_(venue_ids),
            BookingRequest.event_date >= start,
            BookingRequest.event_date <= end,
            BookingRequest.status.in_(ACTIVE_BOOKING_STATUSES),
        )
        .all()
    )
    for venue_id, day in list(blocked_rows) + list(booked_rows):
        taken[venue_id].add(day)
    return taken


def find_alternative_dates(
    db: Session,
    *,
    venue_id: str,
    target: date,
    today: Optional[date] = None,
    limit: int = MAX_ALTERNATIVES,
) -> List[date]:
    """Nearest open dates within +/- 30 days of ``target``, never in the past."""
    today = today or date.today()
    candidates = []
    for offset in range(1, ALTERNATIVE_SEARCH_DAYS + 1):
        for day in (target - timedelta(days=offset), target + timedelta(days=offset)):
            if day >= today:
                candidates.append(day)
    if not candidates:
        return []

    taken = unavailable_dates(db, [venue_id], min(candidates), max(candidates))[venue_id]
    return [day for day in candidates if day not in taken][:limit]


def batch_availability(
    db: Session, *, venue_ids: List[str], dates: List[date]
) -> Dict[str, List[date]]:
    """
    Open dates per venue among ``dates``.

    Read-only and not transactional with claims; a date reported open here
    can still be lost to a concurrent claim.
    """
    if not venue_ids or not dates:
        return {venue_id: [] for venue_id in venue_ids}
    wanted = sorted(set(dates))
    taken = unavailable_dates(db, list(set(venue_ids)), wanted[0], wanted[-1])
    return {
        venue_id: [day for day in wanted if day not in taken.get(venue_id, set())]
        for venue_id in venue_ids
    }
