# venue_booking/services/booking_creator.py
"""
Booking request creation.

Validates the form in a fixed order (first failure wins), prices the booking
from the venue's tiers, claims the date through the availability gate and
then runs the secondary side effects: owner notification and inquiry
conversion. The secondary steps are isolated; the booking stands even if
they fail.
"""
import logging
import re
import secrets
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from venue_booking.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    DATE_BLOCKED,
    DATE_BOOKED,
)
from venue_booking.core.rate_limiter import booking_rate_limiter
from venue_booking.crud import crud_availability, crud_inquiry, crud_venue
from venue_booking.schemas.booking import BookingCreate, BookingCreateResult, VALID_EVENT_TYPES
from venue_booking.schemas.notification import NotificationPayload, NotificationReference
from venue_booking.schemas.token import TokenPayload
from venue_booking.services.notifications import dispatch_notification
from venue_booking.services.pricing import base_price_for_venue, calculate_pricing

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

CONFLICT_MESSAGES = {
    DATE_BLOCKED: "Valt datum är inte tillgängligt",
    DATE_BOOKED: "Valt datum är redan bokat",
}


def new_verification_token() -> str:
    """16 hex characters, unguessable."""
    return secrets.token_hex(8)


def format_date_sv(day: date) -> str:
    months = [
        "januari", "februari", "mars", "april", "maj", "juni", "juli",
        "augusti", "september", "oktober", "november", "december",
    ]
    return f"{day.day} {months[day.month - 1]} {day.year}"


def _validate_required(obj_in: BookingCreate) -> None:
    required = [
        ("venue_id", "Lokal-ID saknas"),
        ("event_date", "Välj ett datum"),
        ("start_time", "Välj en starttid"),
        ("end_time", "Välj en sluttid"),
        ("event_type", "Välj typ av event"),
        ("guest_count", "Ange antal gäster"),
        ("customer_name", "Ange ditt namn"),
        ("customer_email", "Ange din e-postadress"),
    ]
    for field, message in required:
        value = getattr(obj_in, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(message, field=field)
    if not EMAIL_RE.match(obj_in.customer_email.strip()):
        raise ValidationError("Ogiltig e-postadress", field="customer_email")


def create_booking(
    db: Session,
    *,
    obj_in: BookingCreate,
    customer: Optional[TokenPayload],
    client_key: Optional[str] = None,
    today: Optional[date] = None,
) -> BookingCreateResult:
    """
    Create a pending booking request.

    Raises RateLimitError, ValidationError, NotFoundError, AuthenticationError
    or ConflictError (date_blocked / date_booked).
    """
    today = today or date.today()
    booking_rate_limiter.check(customer.sub if customer else f"anon:{client_key or 'unknown'}")

    _validate_required(obj_in)

    if obj_in.end_time <= obj_in.start_time:
        raise ValidationError("Sluttiden måste vara efter starttiden", field="end_time")

    event_type = obj_in.event_type.strip().lower()
    if event_type not in VALID_EVENT_TYPES:
        raise ValidationError("Ogiltig eventtyp", field="event_type")

    venue = crud_venue.get(db, obj_in.venue_id)
    if not venue:
        raise NotFoundError("Lokalen hittades inte", resource="venue")
    if not venue.is_published:
        raise ValidationError("Lokalen är inte tillgänglig för bokning", field="venue_id")

    if obj_in.guest_count < max(venue.min_guests or 1, 1):
        raise ValidationError(
            f"Minsta antal gäster för denna lokal är {max(venue.min_guests or 1, 1)}",
            field="guest_count",
        )
    max_capacity = venue.max_capacity
    if max_capacity and obj_in.guest_count > max_capacity:
        raise ValidationError(f"Lokalen har max {max_capacity} gäster", field="guest_count")

    if obj_in.event_date <= today:
        raise ValidationError("Datum måste vara i framtiden", field="event_date")

    if customer is None:
        raise AuthenticationError("Du måste vara inloggad för att boka")

    base_price = base_price_for_venue(venue)
    if base_price <= 0:
        raise ValidationError("Lokalen saknar prisuppgifter")
    pricing = calculate_pricing(base_price)

    verification_token = new_verification_token()
    result = crud_availability.claim(
        db,
        venue_id=venue.id,
        event_date=obj_in.event_date,
        booking_fields={
            "customer_id": customer.sub,
            "inquiry_id": obj_in.inquiry_id,
            "start_time": obj_in.start_time,
            "end_time": obj_in.end_time,
            "event_type": event_type,
            "event_description": obj_in.event_description or None,
            "guest_count": obj_in.guest_count,
            "customer_name": obj_in.customer_name.strip(),
            "customer_email": obj_in.customer_email.strip().lower(),
            "customer_phone": (obj_in.customer_phone or "").strip() or None,
            "company_name": (obj_in.company_name or "").strip() or None,
            "verification_token": verification_token,
            **pricing.to_dict(),
        },
    )
    if not result.ok:
        raise ConflictError(CONFLICT_MESSAGES[result.error_code], error_code=result.error_code)

    dispatch_notification(
        db,
        NotificationPayload(
            recipient=venue.owner_id,
            category="booking_request",
            headline="Ny bokningsförfrågan",
            body=(
                f"{obj_in.customer_name.strip()} vill boka {venue.name} "
                f"den {format_date_sv(obj_in.event_date)}"
            ),
            reference=NotificationReference(kind="booking", id=result.booking_id),
            author=customer.sub,
            extra={
                "customer_name": obj_in.customer_name.strip(),
                "event_date": obj_in.event_date.isoformat(),
                "event_type": event_type,
                "guest_count": obj_in.guest_count,
            },
        ),
    )

    if obj_in.inquiry_id:
        try:
            crud_inquiry.link_to_booking(
                db, inquiry_id=obj_in.inquiry_id, booking_id=result.booking_id
            )
        except Exception as e:
            db.rollback()
            logger.error(
                f"Inquiry {obj_in.inquiry_id} could not be linked to booking "
                f"{result.booking_id}: {e}",
                exc_info=True,
            )

    logger.info(f"Booking {result.booking_id} created for venue {venue.id} on {obj_in.event_date}")
    return BookingCreateResult(
        booking_id=result.booking_id, verification_token=verification_token
    )
