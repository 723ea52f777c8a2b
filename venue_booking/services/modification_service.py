# venue_booking/services/modification_service.py
"""
Change proposals against an in-flight booking.

    pending ──accept──▶ accepted
            ──decline─▶ declined
            ──cancel──▶ cancelled

Only one proposal per booking may be pending; the partial unique index on
booking_modifications makes that hold under concurrent proposals and a lost
race surfaces as the same "pending proposal exists" conflict as the
pre-check. Either party may propose (price changes are owner only), only the
other party may accept or decline, only the proposer may cancel.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from venue_booking.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    PENDING_MODIFICATION_EXISTS,
)
from venue_booking.crud import crud_availability, crud_booking_modification, crud_booking_request
from venue_booking.models.agent_action import AgentAction
from venue_booking.models.booking_modification import BookingModification
from venue_booking.models.booking_request import BookingRequest
from venue_booking.schemas.modification import ModificationPropose
from venue_booking.schemas.notification import NotificationPayload, NotificationReference
from venue_booking.schemas.token import TokenPayload
from venue_booking.services.booking_creator import format_date_sv
from venue_booking.services.notifications import dispatch_notification
from venue_booking.services.pricing import calculate_pricing
from venue_booking.services.realtime import (
    RealtimeAction,
    agent_topic,
    booking_topic,
    publish_event,
)

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 500
MODIFIABLE_BOOKING_STATUSES = ("pending", "accepted")

PENDING_EXISTS_MESSAGE = "Det finns redan ett pågående ändringsförslag"

# proposed_* column -> booking column
PROPOSED_FIELDS = {
    "proposed_event_date": "event_date",
    "proposed_start_time": "start_time",
    "proposed_end_time": "end_time",
    "proposed_guest_count": "guest_count",
    "proposed_base_price": "base_price",
}


@dataclass
class Parties:
    customer_id: Optional[str]
    owner_id: str

    def role_of(self, user_id: str) -> Optional[str]:
        if user_id == self.owner_id:
            return "owner"
        if self.customer_id and user_id == self.customer_id:
            return "customer"
        return None

    def counterparty_of(self, user_id: str) -> Optional[str]:
        return self.customer_id if user_id == self.owner_id else self.owner_id


def _parties(booking: BookingRequest) -> Parties:
    return Parties(customer_id=booking.customer_id, owner_id=booking.venue.owner_id)


def _load_modification(db: Session, modification_id: str) -> BookingModification:
    modification = crud_booking_modification.get(db, modification_id)
    if not modification:
        raise NotFoundError("Ändringsförslaget hittades inte", resource="modification")
    return modification


def _check_reason(reason: Optional[str]) -> None:
    if reason and len(reason) > MAX_REASON_LENGTH:
        raise ValidationError("Anledningen får vara max 500 tecken", field="reason")


def _changed_fields(booking: BookingRequest, changes: ModificationPropose) -> Dict[str, object]:
    """Proposed values that actually differ from the booking."""
    changed = {}
    for proposed, current in PROPOSED_FIELDS.items():
        value = getattr(changes, proposed)
        if value is not None and value != getattr(booking, current):
            changed[proposed] = value
    return changed


def _topics(db: Session, booking: BookingRequest) -> List[str]:
    """The booking topic plus any agent conversation the booking came from."""
    topics = [booking_topic(booking.id)]
    rows = (
        db.query(AgentAction.conversation_id)
        .filter(AgentAction.booking_request_id == booking.id)
        .distinct()
        .all()
    )
    topics.extend(agent_topic(conversation_id) for (conversation_id,) in rows)
    return topics


def _broadcast(db: Session, booking: BookingRequest, action: RealtimeAction, *,
               sender: str, modification: BookingModification,
               message: Optional[str] = None) -> None:
    for topic in _topics(db, booking):
        publish_event(
            topic, action, sender=sender, message=message,
            data={"booking_id": booking.id, "modification_id": modification.id},
        )


def _notify(db: Session, *, recipient: Optional[str], booking: BookingRequest,
            category: str, headline: str, body: str, author: str,
            extra: Optional[dict] = None) -> None:
    if not recipient:
        return
    dispatch_notification(
        db,
        NotificationPayload(
            recipient=recipient,
            category=category,
            headline=headline,
            body=body,
            reference=NotificationReference(kind="booking", id=booking.id),
            author=author,
            extra={"venue_name": booking.venue.name, **(extra or {})},
        ),
    )


def propose(
    db: Session,
    *,
    booking_id: str,
    changes: ModificationPropose,
    user: TokenPayload,
    today: Optional[date] = None,
) -> BookingModification:
    today = today or date.today()
    booking = crud_booking_request.get(db, booking_id)
    if not booking:
        raise NotFoundError("Bokningen hittades inte", resource="booking")

    parties = _parties(booking)
    role = parties.role_of(user.sub)
    if role is None:
        raise AuthorizationError("Du har inte behörighet att ändra denna bokning")
    if role == "customer" and changes.proposed_base_price is not None:
        raise AuthorizationError("Bara lokalägaren kan föreslå prisändringar")

    if booking.status not in MODIFIABLE_BOOKING_STATUSES:
        raise ValidationError("Denna bokning kan inte ändras")

    if crud_booking_modification.get_pending_for_booking(db, booking.id):
        raise ConflictError(PENDING_EXISTS_MESSAGE, error_code=PENDING_MODIFICATION_EXISTS)

    changed = _changed_fields(booking, changes)
    if not changed:
        raise ValidationError("Inga ändringar föreslagna")

    new_date = changed.get("proposed_event_date")
    if new_date is not None and new_date <= today:
        raise ValidationError("Datumet måste vara i framtiden", field="proposed_event_date")

    start = changed.get("proposed_start_time", booking.start_time)
    end = changed.get("proposed_end_time", booking.end_time)
    if end <= start:
        raise ValidationError("Sluttiden måste vara efter starttiden", field="proposed_end_time")

    guests = changed.get("proposed_guest_count")
    if guests is not None:
        if guests < 1:
            raise ValidationError("Antal gäster måste vara minst 1", field="proposed_guest_count")
        max_capacity = booking.venue.max_capacity
        if max_capacity and guests > max_capacity:
            raise ValidationError(
                f"Lokalen har max {max_capacity} gäster", field="proposed_guest_count"
            )

    price = changed.get("proposed_base_price")
    if price is not None and price <= 0:
        raise ValidationError("Priset måste vara större än 0", field="proposed_base_price")

    _check_reason(changes.reason)

    obj_in = {
        "booking_request_id": booking.id,
        "proposed_by": user.sub,
        "proposer_role": role,
        "reason": changes.reason or None,
        **changed,
    }
    if price is not None:
        pricing = calculate_pricing(price)
        obj_in.update(
            proposed_platform_fee=pricing.platform_fee,
            proposed_total_price=pricing.total_price,
            proposed_venue_payout=pricing.venue_payout,
        )

    modification = crud_booking_modification.create_pending(db, obj_in=obj_in)
    if modification is None:
        raise ConflictError(PENDING_EXISTS_MESSAGE, error_code=PENDING_MODIFICATION_EXISTS)

    _notify(
        db,
        recipient=parties.counterparty_of(user.sub),
        booking=booking,
        category="booking_modification_proposed",
        headline="Ändringsförslag",
        body=(
            f"Ett ändringsförslag har skapats för bokningen av {booking.venue.name} "
            f"den {format_date_sv(booking.event_date)}."
        ),
        author=user.sub,
        extra={
            "event_date": booking.event_date.isoformat(),
            "proposed_event_date": new_date.isoformat() if new_date else None,
            "proposed_guest_count": guests,
        },
    )
    _broadcast(db, booking, RealtimeAction.MODIFIED, sender=user.sub,
               modification=modification, message=changes.reason)
    logger.info(f"Modification {modification.id} proposed on booking {booking.id} by {role}")
    return modification


def _resolver_checks(modification: BookingModification, user: TokenPayload) -> Parties:
    if modification.status != "pending":
        raise ValidationError("Ändringsförslaget är inte längre aktivt")
    parties = _parties(modification.booking_request)
    if parties.role_of(user.sub) is None:
        raise AuthorizationError("Du har inte behörighet")
    return parties


def accept(db: Session, *, modification_id: str, user: TokenPayload) -> BookingModification:
    """Counterparty accepts; every non-null proposed value is copied onto the booking."""
    modification = _load_modification(db, modification_id)
    parties = _resolver_checks(modification, user)
    if modification.proposed_by == user.sub:
        raise AuthorizationError("Du kan inte godkänna ditt eget förslag")

    booking = crud_booking_request.get_for_update(db, modification.booking_request_id)
    if booking is None or booking.status not in MODIFIABLE_BOOKING_STATUSES:
        raise ValidationError("Denna bokning kan inte längre ändras")

    if not crud_booking_modification.resolve(
        db, modification, "accepted", responded_by=user.sub, commit=False
    ):
        raise ValidationError("Ändringsförslaget är inte längre aktivt")

    if modification.proposed_event_date is not None:
        conflict = crud_availability.move_claim(
            db, booking=booking, new_date=modification.proposed_event_date
        )
        if conflict:
            raise ConflictError("Det nya datumet är inte längre tillgängligt", error_code=conflict)
    if modification.proposed_start_time is not None:
        booking.start_time = modification.proposed_start_time
    if modification.proposed_end_time is not None:
        booking.end_time = modification.proposed_end_time
    if modification.proposed_guest_count is not None:
        booking.guest_count = modification.proposed_guest_count
    if modification.proposed_base_price is not None:
        booking.base_price = modification.proposed_base_price
        booking.platform_fee = modification.proposed_platform_fee
        booking.total_price = modification.proposed_total_price
        booking.venue_payout = modification.proposed_venue_payout
    db.commit()
    db.refresh(booking)

    _notify(
        db,
        recipient=modification.proposed_by,
        booking=booking,
        category="booking_modification_accepted",
        headline="Ändringsförslag godkänt",
        body=f"Ditt ändringsförslag för bokningen av {booking.venue.name} har godkänts.",
        author=user.sub,
        extra={"event_date": booking.event_date.isoformat()},
    )
    _broadcast(db, booking, RealtimeAction.ACCEPTED, sender=user.sub, modification=modification)
    logger.info(f"Modification {modification.id} accepted by {parties.role_of(user.sub)}")
    return modification


def decline(
    db: Session, *, modification_id: str, user: TokenPayload, reason: Optional[str]
) -> BookingModification:
    """Counterparty declines with a reason; the booking is left untouched."""
    if not reason or not reason.strip():
        raise ValidationError("Ange en anledning", field="reason")
    _check_reason(reason)

    modification = _load_modification(db, modification_id)
    _resolver_checks(modification, user)
    if modification.proposed_by == user.sub:
        raise AuthorizationError("Du kan inte neka ditt eget förslag")

    if not crud_booking_modification.resolve(
        db, modification, "declined", responded_by=user.sub, reason=reason.strip()
    ):
        raise ValidationError("Ändringsförslaget är inte längre aktivt")

    booking = modification.booking_request
    _notify(
        db,
        recipient=modification.proposed_by,
        booking=booking,
        category="booking_modification_declined",
        headline="Ändringsförslag nekat",
        body=f"Ditt ändringsförslag för bokningen av {booking.venue.name} har nekats.",
        author=user.sub,
        extra={"reason": reason.strip()},
    )
    _broadcast(db, booking, RealtimeAction.DECLINED, sender=user.sub,
               modification=modification, message=reason.strip())
    return modification


def cancel(db: Session, *, modification_id: str, user: TokenPayload) -> BookingModification:
    """The proposer withdraws a pending proposal."""
    modification = _load_modification(db, modification_id)
    parties = _resolver_checks(modification, user)
    if modification.proposed_by != user.sub:
        raise AuthorizationError("Bara den som skapade förslaget kan dra tillbaka det")

    if not crud_booking_modification.resolve(
        db, modification, "cancelled", responded_by=user.sub
    ):
        raise ValidationError("Ändringsförslaget är inte längre aktivt")

    booking = modification.booking_request
    _notify(
        db,
        recipient=parties.counterparty_of(user.sub),
        booking=booking,
        category="booking_modification_cancelled",
        headline="Ändringsförslag tillbakadraget",
        body=f"Ändringsförslaget för bokningen av {booking.venue.name} har dragits tillbaka.",
        author=user.sub,
    )
    _broadcast(db, booking, RealtimeAction.CANCELLED, sender=user.sub, modification=modification)
    return modification
