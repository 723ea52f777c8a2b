# venue_booking/crud/crud_booking_modification.py
import logging
from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from venue_booking.models.booking_modification import BookingModification
from venue_booking.models.booking_request import BookingRequest

logger = logging.getLogger(__name__)

# pending → {accepted, declined, cancelled}, all terminal
VALID_MODIFICATION_TRANSITIONS = {
    "pending": {"accepted", "declined", "cancelled"},
    "accepted": set(),
    "declined": set(),
    "cancelled": set(),
}


def validate_transition(old_status: str, new_status: str) -> bool:
    return new_status in VALID_MODIFICATION_TRANSITIONS.get(old_status, set())


def get(db: Session, modification_id: str) -> Optional[BookingModification]:
    return (
        db.query(BookingModification)
        .options(
            joinedload(BookingModification.booking_request).joinedload(BookingRequest.venue)
        )
        .filter(BookingModification.id == modification_id)
        .first()
    )


def get_pending_for_booking(db: Session, booking_id: str) -> Optional[BookingModification]:
    return (
        db.query(BookingModification)
        .filter(
            BookingModification.booking_request_id == booking_id,
            BookingModification.status == "pending",
        )
        .first()
    )


def list_for_booking(db: Session, booking_id: str) -> List[BookingModification]:
    return (
        db.query(BookingModification)
        .filter(BookingModification.booking_request_id == booking_id)
        .order_by(BookingModification.created_at)
        .all()
    )


def create_pending(db: Session, *, obj_in: dict) -> Optional[BookingModification]:
    """
    Insert a pending modification.

    Returns None when the partial unique index already holds a pending row
    for the booking; the session is rolled back in that case.
    """
    modification = BookingModification(status="pending", **obj_in)
    db.add(modification)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            f"Pending modification already exists for booking={obj_in.get('booking_request_id')}"
        )
        return None
    db.refresh(modification)
    return modification


def resolve(
    db: Session,
    modification: BookingModification,
    new_status: str,
    *,
    responded_by: Optional[str] = None,
    reason: Optional[str] = None,
    commit: bool = True,
) -> bool:
    """
    Move a pending modification to ``new_status``.

    The UPDATE only matches while the row is still pending, so of two
    concurrent resolutions exactly one wins. Returns False for the loser and
    for invalid transitions.
    """
    if not validate_transition(modification.status, new_status):
        logger.warning(
            f"Invalid modification transition: {modification.status} → {new_status}"
        )
        return False

    values = {
        "status": new_status,
        "responded_by": responded_by,
        "responded_at": datetime.now(timezone.utc),
    }
    if reason is not None:
        values["response_reason"] = reason

    updated = (
        db.query(BookingModification)
        .filter(
            BookingModification.id == modification.id,
            BookingModification.status == "pending",
        )
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        db.rollback()
        return False
    if commit:
        db.commit()
    db.refresh(modification)
    return True
