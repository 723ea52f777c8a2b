# tests/services/test_agent_actions.py

import json

import pytest

from venue_booking.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ValidationError,
    DATE_BOOKED,
)
from venue_booking.crud import crud_agent_action, crud_agent_conversation
from venue_booking.models import AgentAction, BookingRequest
from venue_booking.schemas.agent import BookingSummary, ConfirmBookingRequest, ModifyActionRequest
from venue_booking.services.agent import actions
from venue_booking.services.realtime import agent_topic


@pytest.fixture
def conversation(db, venue):
    return crud_agent_conversation.get_or_create(db, venue_id=venue.id, customer_id="customer_1")


@pytest.fixture
def summary(venue, future_date):
    return BookingSummary(
        venue_id=venue.id,
        date=future_date,
        start_time="18:00",
        end_time="23:00",
        guest_count=40,
        event_type="fest",
        base_price=18000,
        platform_fee=2160,
        total_price=20160,
    )


@pytest.fixture
def confirmed(db, conversation, summary, customer):
    return actions.confirm_booking(
        db, conversation_id=conversation.id,
        request=ConfirmBookingRequest(summary=summary), customer=customer,
    )


def agent_events(redis_publish, conversation_id):
    return [
        json.loads(c.args[1]) for c in redis_publish.call_args_list
        if c.args[0] == agent_topic(conversation_id)
    ]


class TestConfirmBooking:
    def test_claims_date_and_queues_approval(self, db, conversation, confirmed, future_date):
        booking = db.query(BookingRequest).filter(BookingRequest.id == confirmed.booking_id).one()
        assert booking.status == "pending"
        assert booking.event_date == future_date
        assert booking.customer_name == "Anna Svensson"

        action = db.query(AgentAction).filter(AgentAction.id == confirmed.action_id).one()
        assert action.action_type == "booking_approval"
        assert action.booking_request_id == booking.id
        assert action.summary["status"] == "sent"

        db.refresh(conversation)
        assert conversation.status == "waiting_for_owner"
        assert conversation.messages[-1]["role"] == "system"

    def test_requires_login(self, db, conversation, summary):
        with pytest.raises(AuthenticationError):
            actions.confirm_booking(
                db, conversation_id=conversation.id,
                request=ConfirmBookingRequest(summary=summary), customer=None,
            )

    def test_other_customers_conversation(self, db, conversation, summary, stranger):
        with pytest.raises(AuthorizationError):
            actions.confirm_booking(
                db, conversation_id=conversation.id,
                request=ConfirmBookingRequest(summary=summary), customer=stranger,
            )

    def test_summary_for_another_venue(self, db, conversation, summary, customer):
        other = summary.model_copy(update={"venue_id": "ven_other"})

        with pytest.raises(ValidationError):
            actions.confirm_booking(
                db, conversation_id=conversation.id,
                request=ConfirmBookingRequest(summary=other), customer=customer,
            )

    def test_date_taken_since_the_draft(self, db, conversation, summary, customer, make_booking, future_date):
        make_booking(future_date, customer_id="customer_2")

        with pytest.raises(ConflictError) as exc:
            actions.confirm_booking(
                db, conversation_id=conversation.id,
                request=ConfirmBookingRequest(summary=summary), customer=customer,
            )
        assert exc.value.error_code == DATE_BOOKED
        assert db.query(AgentAction).count() == 0


class TestOwnerDecisions:
    def test_approve(self, db, conversation, confirmed, owner, redis_publish):
        actions.approve_action(db, action_id=confirmed.action_id, owner=owner)

        booking = db.query(BookingRequest).filter(BookingRequest.id == confirmed.booking_id).one()
        action = crud_agent_action.get(db, confirmed.action_id)
        db.refresh(conversation)
        assert booking.status == "accepted"
        assert action.status == "approved"
        assert action.resolved_at is not None
        assert conversation.status == "completed"
        assert [e["action"] for e in agent_events(redis_publish, conversation.id)] == ["approved"]

    def test_only_owner_can_approve(self, db, confirmed, customer):
        with pytest.raises(AuthorizationError):
            actions.approve_action(db, action_id=confirmed.action_id, owner=customer)

    def test_cannot_resolve_twice(self, db, confirmed, owner):
        actions.approve_action(db, action_id=confirmed.action_id, owner=owner)

        with pytest.raises(ValidationError):
            actions.decline_action(db, action_id=confirmed.action_id, owner=owner)

    def test_decline(self, db, conversation, confirmed, owner, redis_publish):
        actions.decline_action(db, action_id=confirmed.action_id, owner=owner, reason="Fullbokat")

        booking = db.query(BookingRequest).filter(BookingRequest.id == confirmed.booking_id).one()
        db.refresh(conversation)
        assert booking.status == "declined"
        assert conversation.status == "active"
        assert "Fullbokat" in conversation.messages[-1]["content"]
        event = agent_events(redis_publish, conversation.id)[-1]
        assert event["action"] == "declined"
        assert event["message"] == "Fullbokat"

    def test_modify_creates_proposal(self, db, conversation, confirmed, owner, redis_publish):
        modification = actions.modify_action(
            db, action_id=confirmed.action_id, owner=owner,
            request=ModifyActionRequest(adjusted_price=20000, note="Inklusive städning"),
        )

        assert modification.proposed_base_price == 20000
        assert modification.proposer_role == "owner"
        action = crud_agent_action.get(db, confirmed.action_id)
        assert action.status == "modified"
        assert action.owner_response["modification_id"] == modification.id
        assert "modified" in [e["action"] for e in agent_events(redis_publish, conversation.id)]

    def test_reply_to_escalation(self, db, venue, conversation, owner, redis_publish):
        action = crud_agent_action.create(
            db,
            obj_in={
                "conversation_id": conversation.id,
                "venue_id": venue.id,
                "customer_id": "customer_1",
                "action_type": "escalation",
                "summary": {"reason": "Fråga", "question": "Får vi ha hund med?"},
            },
        )

        actions.reply_to_escalation(db, action_id=action.id, owner=owner, response="Ja, i koppel.")

        db.refresh(conversation)
        assert conversation.messages[-1]["content"] == "[Svar från lokalägaren]: Ja, i koppel."
        assert conversation.status == "active"
        assert agent_events(redis_publish, conversation.id)[-1]["message"] == "Ja, i koppel."

    def test_reply_needs_an_escalation(self, db, confirmed, owner):
        with pytest.raises(ValidationError):
            actions.reply_to_escalation(db, action_id=confirmed.action_id, owner=owner, response="Hej")
