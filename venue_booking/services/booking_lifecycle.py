# venue_booking/services/booking_lifecycle.py
"""
Owner accept/decline and customer/owner cancel of a booking request.

Each transition is checked against VALID_BOOKING_TRANSITIONS, notifies the
other party and is broadcast on the booking's realtime topic.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from venue_booking.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    DATE_BLOCKED,
)
from venue_booking.crud import crud_booking_request, crud_venue
from venue_booking.models.booking_request import BookingRequest
from venue_booking.schemas.notification import NotificationPayload, NotificationReference
from venue_booking.schemas.token import TokenPayload
from venue_booking.services.booking_creator import format_date_sv
from venue_booking.services.notifications import dispatch_notification
from venue_booking.services.realtime import RealtimeAction, booking_topic, publish_event

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "accepted": "redan godkänd",
    "declined": "redan nekad",
    "cancelled": "avbokad",
    "completed": "genomförd",
    "paid_out": "utbetald",
}

MAX_REASON_LENGTH = 500


def _load(db: Session, booking_id: str) -> BookingRequest:
    booking = crud_booking_request.get(db, booking_id)
    if not booking:
        raise NotFoundError("Bokningen hittades inte", resource="booking")
    return booking


def _require_owner(booking: BookingRequest, user: TokenPayload) -> None:
    if booking.venue.owner_id != user.sub:
        raise AuthorizationError("Du har inte behörighet att hantera denna bokning")


def _require_pending(booking: BookingRequest) -> None:
    if booking.status != "pending":
        label = STATUS_LABELS.get(booking.status, booking.status)
        raise ValidationError(f"Denna bokning är {label}")


def _notify_customer(db: Session, booking: BookingRequest, *, category: str,
                     headline: str, body: str, author: str) -> None:
    if not booking.customer_id:
        return
    dispatch_notification(
        db,
        NotificationPayload(
            recipient=booking.customer_id,
            category=category,
            headline=headline,
            body=body,
            reference=NotificationReference(kind="booking", id=booking.id),
            author=author,
            extra={"venue_name": booking.venue.name, "event_date": booking.event_date.isoformat()},
        ),
    )


def accept_booking(db: Session, *, booking_id: str, user: TokenPayload) -> BookingRequest:
    booking = _load(db, booking_id)
    _require_owner(booking, user)
    _require_pending(booking)

    # The owner may have blocked the date after the request came in
    if crud_venue.get_blocked_date(db, venue_id=booking.venue_id, on=booking.event_date):
        raise ConflictError("Detta datum är blockerat i kalendern", error_code=DATE_BLOCKED)

    if not crud_booking_request.transition_status(db, booking, "accepted"):
        raise ValidationError("Bokningen kan inte godkännas")

    _notify_customer(
        db, booking,
        category="booking_accepted",
        headline="Bokningsförfrågan godkänd!",
        body=(
            f"Din bokning av {booking.venue.name} den "
            f"{format_date_sv(booking.event_date)} har godkänts!"
        ),
        author=user.sub,
    )
    publish_event(
        booking_topic(booking.id), RealtimeAction.APPROVED,
        sender=user.sub, data={"booking_id": booking.id, "status": booking.status},
    )
    logger.info(f"Booking {booking.id} accepted by owner {user.sub}")
    return booking


def decline_booking(
    db: Session, *, booking_id: str, user: TokenPayload, reason: Optional[str] = None
) -> BookingRequest:
    if reason and len(reason) > MAX_REASON_LENGTH:
        raise ValidationError("Anledningen får vara max 500 tecken", field="reason")
    booking = _load(db, booking_id)
    _require_owner(booking, user)
    _require_pending(booking)

    if not crud_booking_request.transition_status(
        db, booking, "declined", reason=reason or None, actor=user.sub
    ):
        raise ValidationError("Bokningen kan inte nekas")

    _notify_customer(
        db, booking,
        category="booking_declined",
        headline="Bokningsförfrågan nekad",
        body=f"Din bokningsförfrågan för {booking.venue.name} kunde tyvärr inte godkännas.",
        author=user.sub,
    )
    publish_event(
        booking_topic(booking.id), RealtimeAction.DECLINED,
        sender=user.sub, message=reason, data={"booking_id": booking.id},
    )
    return booking


def cancel_booking(
    db: Session, *, booking_id: str, user: TokenPayload, reason: Optional[str] = None
) -> BookingRequest:
    """Customer or venue owner withdraws a pending or accepted booking."""
    if reason and len(reason) > MAX_REASON_LENGTH:
        raise ValidationError("Anledningen får vara max 500 tecken", field="reason")
    booking = _load(db, booking_id)
    is_customer = booking.customer_id == user.sub
    is_owner = booking.venue.owner_id == user.sub
    if not is_customer and not is_owner:
        raise AuthorizationError("Du har inte behörighet att avboka denna bokning")
    if booking.status not in ("pending", "accepted"):
        raise ValidationError("Denna bokning kan inte avbokas")

    default_reason = "Avbokad av kund" if is_customer else "Avbokad av lokalägaren"
    if not crud_booking_request.transition_status(
        db, booking, "cancelled", reason=reason or default_reason, actor=user.sub
    ):
        raise ValidationError("Denna bokning kan inte avbokas")

    recipient = booking.venue.owner_id if is_customer else booking.customer_id
    if recipient:
        dispatch_notification(
            db,
            NotificationPayload(
                recipient=recipient,
                category="booking_cancelled",
                headline="Bokning avbokad",
                body=(
                    f"Bokningen av {booking.venue.name} den "
                    f"{format_date_sv(booking.event_date)} har avbokats."
                ),
                reference=NotificationReference(kind="booking", id=booking.id),
                author=user.sub,
            ),
        )
    publish_event(
        booking_topic(booking.id), RealtimeAction.CANCELLED,
        sender=user.sub, message=reason, data={"booking_id": booking.id},
    )
    return booking


def get_booking_for_party(db: Session, *, booking_id: str, user: TokenPayload) -> BookingRequest:
    booking = _load(db, booking_id)
    if user.sub not in (booking.customer_id, booking.venue.owner_id):
        raise AuthorizationError()
    return booking


def get_booking_by_token(db: Session, *, token: str) -> BookingRequest:
    """Confirmation page access without an account."""
    booking = crud_booking_request.get_by_token(db, token) if token else None
    if not booking:
        raise NotFoundError("Bokningen hittades inte", resource="booking")
    return booking
