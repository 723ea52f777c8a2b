# venue_booking/crud/crud_booking_request.py
import logging
from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy.orm import Session, joinedload

from venue_booking.models.booking_modification import BookingModification
from venue_booking.models.booking_request import BookingRequest

logger = logging.getLogger(__name__)

# Valid state transitions for BookingRequest
VALID_BOOKING_TRANSITIONS = {
    "pending": {"accepted", "declined", "cancelled"},
    "accepted": {"cancelled", "completed"},
    "completed": {"paid_out"},
    "declined": set(),  # Terminal state
    "cancelled": set(),  # Terminal state
    "paid_out": set(),  # Terminal state
}


def validate_transition(old_status: str, new_status: str) -> bool:
    if old_status not in VALID_BOOKING_TRANSITIONS:
        logger.warning(f"Unknown booking status: {old_status}")
        return False

    if new_status not in VALID_BOOKING_TRANSITIONS[old_status]:
        logger.warning(f"Invalid booking transition: {old_status} → {new_status}")
        return False

    return True


def transition_status(
    db: Session,
    booking: BookingRequest,
    new_status: str,
    *,
    reason: Optional[str] = None,
    actor: Optional[str] = None,
) -> bool:
    """
    Validate and execute a booking status transition.
    Returns True on success, False if the transition is invalid.

    Declining or cancelling also cancels any pending modification in the
    same commit.
    """
    if not validate_transition(booking.status, new_status):
        return False

    now = datetime.now(timezone.utc)
    booking.status = new_status
    if new_status in ("accepted", "declined"):
        booking.responded_at = now
    if new_status == "cancelled":
        booking.cancelled_at = now
    if reason is not None:
        booking.decline_reason = reason
    if new_status in ("declined", "cancelled"):
        closed = (
            db.query(BookingModification)
            .filter(
                BookingModification.booking_request_id == booking.id,
                BookingModification.status == "pending",
            )
            .update(
                {"status": "cancelled", "responded_by": actor, "responded_at": now},
                synchronize_session=False,
            )
        )
        if closed:
            logger.info(f"Cancelled {closed} pending modification(s) on booking {booking.id}")

    db.commit()
    db.refresh(booking)
    return True


def get(db: Session, booking_id: str) -> Optional[BookingRequest]:
    return (
        db.query(BookingRequest)
        .options(joinedload(BookingRequest.venue))
        .filter(BookingRequest.id == booking_id)
        .first()
    )


def get_for_update(db: Session, booking_id: str) -> Optional[BookingRequest]:
    """Load a booking with a row lock held until the caller commits."""
    return (
        db.query(BookingRequest)
        .filter(BookingRequest.id == booking_id)
        .with_for_update()
        .first()
    )


def get_by_token(db: Session, token: str) -> Optional[BookingRequest]:
    return (
        db.query(BookingRequest)
        .options(joinedload(BookingRequest.venue))
        .filter(BookingRequest.verification_token == token)
        .first()
    )


def get_for_customer(db: Session, customer_id: str) -> List[BookingRequest]:
    return (
        db.query(BookingRequest)
        .filter(BookingRequest.customer_id == customer_id)
        .order_by(BookingRequest.event_date.desc())
        .all()
    )
