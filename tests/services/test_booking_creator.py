"""
Tests for booking request creation.

Validation runs in a fixed order and the first failing rule answers; a
valid request claims the date, notifies the owner and links the inquiry.
"""

import pytest
from datetime import date, timedelta

from venue_booking.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ValidationError,
    DATE_BLOCKED,
    DATE_BOOKED,
)
from venue_booking.models import BookingRequest, Inquiry, Notification, VenueBlockedDate
from venue_booking.schemas.booking import BookingCreate
from venue_booking.services.booking_creator import create_booking, format_date_sv


def form(venue_id, event_date, **overrides):
    data = {
        "venue_id": venue_id,
        "event_date": event_date,
        "start_time": "18:00",
        "end_time": "23:00",
        "event_type": "fest",
        "guest_count": 40,
        "customer_name": "Anna Svensson",
        "customer_email": "Anna@Example.se",
    }
    data.update(overrides)
    return BookingCreate(**data)


class TestCreateBooking:
    def test_creates_pending_booking_with_server_pricing(self, db, venue, customer, future_date):
        result = create_booking(db, obj_in=form(venue.id, future_date), customer=customer)

        booking = db.query(BookingRequest).filter(BookingRequest.id == result.booking_id).one()
        assert booking.status == "pending"
        assert booking.base_price == 18000
        assert booking.platform_fee == 2160
        assert booking.total_price == 20160
        assert booking.venue_payout == 18000
        assert booking.customer_email == "anna@example.se"
        assert len(result.verification_token) == 16
        assert booking.verification_token == result.verification_token

    def test_owner_is_notified(self, db, venue, customer, owner, future_date, redis_publish):
        result = create_booking(db, obj_in=form(venue.id, future_date), customer=customer)

        notification = db.query(Notification).filter(Notification.recipient_id == owner.sub).one()
        assert notification.category == "booking_request"
        assert notification.reference_id == result.booking_id
        assert "Anna Svensson" in notification.body
        redis_publish.assert_called()

    def test_links_inquiry(self, db, venue, customer, future_date):
        inquiry = Inquiry(venue_id=venue.id, user_id=customer.sub, message="Är ni lediga?")
        db.add(inquiry)
        db.commit()

        result = create_booking(
            db, obj_in=form(venue.id, future_date, inquiry_id=inquiry.id), customer=customer
        )

        db.refresh(inquiry)
        assert inquiry.status == "linked"
        assert inquiry.booking_request_id == result.booking_id


class TestValidationOrder:
    def test_missing_name_before_anything_else(self, db, venue, customer, today):
        # Past date and too many guests too, but the missing field answers first
        with pytest.raises(ValidationError) as exc:
            create_booking(
                db,
                obj_in=form(venue.id, today, customer_name="  ", guest_count=500),
                customer=customer,
            )
        assert exc.value.details == {"field": "customer_name"}

    def test_invalid_email(self, db, venue, customer, future_date):
        with pytest.raises(ValidationError) as exc:
            create_booking(db, obj_in=form(venue.id, future_date, customer_email="anna@"), customer=customer)
        assert exc.value.message == "Ogiltig e-postadress"

    def test_end_before_start(self, db, venue, customer, future_date):
        with pytest.raises(ValidationError) as exc:
            create_booking(db, obj_in=form(venue.id, future_date, end_time="17:00"), customer=customer)
        assert exc.value.details == {"field": "end_time"}

    def test_unknown_event_type(self, db, venue, customer, future_date):
        with pytest.raises(ValidationError) as exc:
            create_booking(db, obj_in=form(venue.id, future_date, event_type="rave"), customer=customer)
        assert exc.value.message == "Ogiltig eventtyp"

    def test_unknown_venue(self, db, venue, customer, future_date):
        with pytest.raises(NotFoundError):
            create_booking(db, obj_in=form("ven_missing", future_date), customer=customer)

    def test_unpublished_venue(self, db, venue, customer, future_date):
        venue.status = "draft"
        db.commit()
        with pytest.raises(ValidationError):
            create_booking(db, obj_in=form(venue.id, future_date), customer=customer)

    def test_over_capacity(self, db, venue, customer, future_date):
        with pytest.raises(ValidationError) as exc:
            create_booking(db, obj_in=form(venue.id, future_date, guest_count=80), customer=customer)
        assert exc.value.message == "Lokalen har max 60 gäster"

    def test_today_is_not_in_the_future(self, db, venue, customer, today):
        with pytest.raises(ValidationError) as exc:
            create_booking(db, obj_in=form(venue.id, today), customer=customer)
        assert exc.value.details == {"field": "event_date"}

    def test_anonymous_caller_is_rejected_after_validation(self, db, venue, future_date):
        with pytest.raises(AuthenticationError):
            create_booking(db, obj_in=form(venue.id, future_date), customer=None, client_key="10.0.0.1")
        assert db.query(BookingRequest).count() == 0


class TestDateConflicts:
    def test_blocked_date(self, db, venue, customer, future_date):
        db.add(VenueBlockedDate(venue_id=venue.id, blocked_date=future_date))
        db.commit()

        with pytest.raises(ConflictError) as exc:
            create_booking(db, obj_in=form(venue.id, future_date), customer=customer)
        assert exc.value.error_code == DATE_BLOCKED
        assert exc.value.status_code == 409

    def test_booked_date(self, db, venue, customer, future_date, make_booking):
        make_booking(future_date, customer_id="customer_2")

        with pytest.raises(ConflictError) as exc:
            create_booking(db, obj_in=form(venue.id, future_date), customer=customer)
        assert exc.value.error_code == DATE_BOOKED
        assert exc.value.message == "Valt datum är redan bokat"


def test_rate_limit_per_customer(db, venue, customer, future_date):
    for offset in range(5):
        create_booking(
            db, obj_in=form(venue.id, future_date + timedelta(days=offset)), customer=customer
        )

    with pytest.raises(RateLimitError) as exc:
        create_booking(db, obj_in=form(venue.id, future_date + timedelta(days=10)), customer=customer)
    assert exc.value.retry_after >= 1


def test_format_date_sv():
    assert format_date_sv(date(2027, 3, 5)) == "5 mars 2027"
