# tests/services/test_booking_lifecycle.py

import json

import pytest

from venue_booking.core.exceptions import AuthorizationError, ConflictError, ValidationError, DATE_BLOCKED
from venue_booking.models import BookingModification, Notification, VenueBlockedDate
from venue_booking.schemas.modification import ModificationPropose
from venue_booking.services import booking_lifecycle, modification_service
from venue_booking.services.realtime import booking_topic


def published(redis_publish, topic):
    return [json.loads(c.args[1]) for c in redis_publish.call_args_list if c.args[0] == topic]


class TestAcceptBooking:
    def test_owner_accepts(self, db, owner, customer, future_date, make_booking, redis_publish):
        booking = make_booking(future_date)

        booking_lifecycle.accept_booking(db, booking_id=booking.id, user=owner)

        db.refresh(booking)
        assert booking.status == "accepted"
        assert booking.responded_at is not None
        notification = db.query(Notification).filter(Notification.recipient_id == customer.sub).one()
        assert notification.category == "booking_accepted"
        events = published(redis_publish, booking_topic(booking.id))
        assert events[-1]["action"] == "approved"
        assert events[-1]["sender"] == owner.sub

    def test_customer_cannot_accept(self, db, customer, future_date, make_booking):
        booking = make_booking(future_date)

        with pytest.raises(AuthorizationError):
            booking_lifecycle.accept_booking(db, booking_id=booking.id, user=customer)

    def test_already_accepted(self, db, owner, future_date, make_booking):
        booking = make_booking(future_date, status="accepted")

        with pytest.raises(ValidationError) as exc:
            booking_lifecycle.accept_booking(db, booking_id=booking.id, user=owner)
        assert exc.value.message == "Denna bokning är redan godkänd"

    def test_date_blocked_after_request(self, db, venue, owner, future_date, make_booking):
        booking = make_booking(future_date)
        db.add(VenueBlockedDate(venue_id=venue.id, blocked_date=future_date))
        db.commit()

        with pytest.raises(ConflictError) as exc:
            booking_lifecycle.accept_booking(db, booking_id=booking.id, user=owner)
        assert exc.value.error_code == DATE_BLOCKED


class TestDeclineAndCancel:
    def test_decline_with_reason(self, db, owner, future_date, make_booking):
        booking = make_booking(future_date)

        booking_lifecycle.decline_booking(db, booking_id=booking.id, user=owner, reason="Fullbokat")

        db.refresh(booking)
        assert booking.status == "declined"
        assert booking.decline_reason == "Fullbokat"

    def test_decline_reason_too_long(self, db, owner, future_date, make_booking):
        booking = make_booking(future_date)

        with pytest.raises(ValidationError):
            booking_lifecycle.decline_booking(db, booking_id=booking.id, user=owner, reason="x" * 501)

    def test_customer_cancels_accepted_booking(self, db, owner, customer, future_date, make_booking):
        booking = make_booking(future_date, status="accepted")

        booking_lifecycle.cancel_booking(db, booking_id=booking.id, user=customer)

        db.refresh(booking)
        assert booking.status == "cancelled"
        assert booking.decline_reason == "Avbokad av kund"
        notification = db.query(Notification).filter(Notification.recipient_id == owner.sub).one()
        assert notification.category == "booking_cancelled"

    def test_cancelled_date_can_be_booked_again(self, db, customer, future_date, make_booking):
        booking = make_booking(future_date)
        booking_lifecycle.cancel_booking(db, booking_id=booking.id, user=customer)

        again = make_booking(future_date, customer_id="customer_2")

        assert again.status == "pending"

    def test_declined_booking_cannot_be_cancelled(self, db, customer, future_date, make_booking):
        booking = make_booking(future_date, status="declined")

        with pytest.raises(ValidationError):
            booking_lifecycle.cancel_booking(db, booking_id=booking.id, user=customer)

    def test_stranger_cannot_cancel(self, db, stranger, future_date, make_booking):
        booking = make_booking(future_date)

        with pytest.raises(AuthorizationError):
            booking_lifecycle.cancel_booking(db, booking_id=booking.id, user=stranger)


class TestPendingModificationOnClose:
    def propose_guests(self, db, booking, user):
        return modification_service.propose(
            db, booking_id=booking.id,
            changes=ModificationPropose(proposed_guest_count=50),
            user=user,
        )

    def test_decline_cancels_pending_modification(self, db, owner, customer, future_date, make_booking):
        booking = make_booking(future_date)
        modification = self.propose_guests(db, booking, customer)

        booking_lifecycle.decline_booking(db, booking_id=booking.id, user=owner)

        closed = db.get(BookingModification, modification.id)
        assert closed.status == "cancelled"
        assert closed.responded_by == owner.sub
        db.refresh(booking)
        assert booking.status == "declined"
        assert booking.guest_count == 40

    def test_cancel_cancels_pending_modification(self, db, owner, customer, future_date, make_booking):
        booking = make_booking(future_date, status="accepted")
        modification = self.propose_guests(db, booking, owner)

        booking_lifecycle.cancel_booking(db, booking_id=booking.id, user=customer)

        closed = db.get(BookingModification, modification.id)
        assert closed.status == "cancelled"
        assert closed.responded_by == customer.sub
        assert (
            db.query(BookingModification)
            .filter(BookingModification.status == "pending")
            .count()
        ) == 0

    def test_resolved_modifications_are_untouched(self, db, owner, customer, future_date, make_booking):
        booking = make_booking(future_date)
        modification = self.propose_guests(db, booking, customer)
        modification_service.decline(db, modification_id=modification.id, user=owner, reason="Nej tack")

        booking_lifecycle.cancel_booking(db, booking_id=booking.id, user=customer)

        assert db.get(BookingModification, modification.id).status == "declined"
