"""
Tests for the booking agent's tools.

execute_tool never raises; every failure comes back as an ``error`` entry
the model can read. propose_booking only drafts, escalate_to_owner is the
one tool that writes.
"""

from datetime import timedelta

import pytest

from venue_booking.crud import crud_agent_conversation
from venue_booking.models import AgentAction, BookingRequest, Notification, VenueBlockedDate, VenuePackage
from venue_booking.services.agent.executor import NO_INFO_ANSWER, ToolContext, execute_tool
from venue_booking.services.agent.tools import ToolName, tool_declarations


@pytest.fixture
def conversation(db, venue):
    return crud_agent_conversation.get_or_create(db, venue_id=venue.id, customer_id="customer_1")


@pytest.fixture
def ctx(db, venue, agent_config, conversation, today):
    return ToolContext(
        db=db, venue=venue, conversation_id=conversation.id,
        config=agent_config, customer_id="customer_1", today=today,
    )


def test_declarations_cover_every_tool():
    declarations = {d["name"]: d for d in tool_declarations()}

    assert set(declarations) == {t.value for t in ToolName}
    schema = declarations["propose_booking"]["input_schema"]
    assert schema["type"] == "object"
    assert set(schema["required"]) == {"date", "start_time", "end_time", "guest_count", "event_type"}
    assert "title" not in schema


class TestDispatch:
    def test_unknown_tool(self, ctx):
        assert execute_tool("book_now", {}, ctx) == {"error": "Okänt verktyg: book_now"}

    def test_invalid_arguments(self, ctx):
        result = execute_tool("check_availability", {"date": "nästa fredag"}, ctx)

        assert result["error"] == "Ogiltiga argument"
        assert result["details"][0]["field"] == "date"

    def test_missing_arguments(self, ctx):
        result = execute_tool("calculate_price", None, ctx)

        assert result["error"] == "Ogiltiga argument"


class TestCheckAvailability:
    def test_available(self, ctx, future_date):
        result = execute_tool("check_availability", {"date": future_date.isoformat()}, ctx)

        assert result == {"date": future_date.isoformat(), "available": True, "status": "available"}

    def test_today_counts_as_past(self, ctx, today):
        result = execute_tool("check_availability", {"date": today.isoformat()}, ctx)

        assert result["available"] is False
        assert result["status"] == "past"

    def test_booked_with_alternatives(self, ctx, future_date, make_booking):
        make_booking(future_date)

        result = execute_tool("check_availability", {"date": future_date.isoformat()}, ctx)

        assert result["status"] == "booked"
        assert result["alternatives"][0] == (future_date - timedelta(days=1)).isoformat()
        assert len(result["alternatives"]) == 3

    def test_blocked_with_note(self, db, ctx, venue, future_date):
        db.add(VenueBlockedDate(venue_id=venue.id, blocked_date=future_date, reason="Privat fest"))
        db.commit()

        result = execute_tool("check_availability", {"date": future_date.isoformat()}, ctx)

        assert result["status"] == "blocked"
        assert result["note"] == "Privat fest"


class TestCalculatePrice:
    def test_full_day(self, ctx):
        result = execute_tool("calculate_price", {"guest_count": 40}, ctx)

        assert result["base_price"] == 18000
        assert result["platform_fee"] == 2160
        assert result["total_price"] == 20160
        assert result["total_formatted"] == "20 160 kr"
        assert "warning" not in result

    def test_over_capacity_warns(self, ctx):
        result = execute_tool("calculate_price", {"guest_count": 80}, ctx)

        assert result["warning"] == "Lokalen har max 60 gäster"

    def test_package(self, db, ctx, venue):
        package = VenuePackage(venue_id=venue.id, name="Middagspaket", price_per_person=500)
        db.add(package)
        db.commit()

        result = execute_tool("calculate_price", {"guest_count": 40, "package_id": package.id}, ctx)

        assert result["base_price"] == 20000
        assert result["package_name"] == "Middagspaket"

    def test_unknown_package(self, ctx):
        assert execute_tool("calculate_price", {"guest_count": 40, "package_id": "pkg_x"}, ctx) == {
            "error": "Paketet finns inte"
        }


class TestGetVenueInfo:
    def test_faq_answer_wins(self, ctx):
        result = execute_tool("get_venue_info", {"topic": "parkering"}, ctx)

        assert result == {"found": True, "answer": "Ja, 20 platser i garaget under huset."}

    def test_capacity_from_profile(self, ctx):
        result = execute_tool("get_venue_info", {"topic": "kapacitet"}, ctx)

        assert result["answer"] == "Lokalen rymmer max 60 gäster."

    def test_house_rules(self, ctx):
        result = execute_tool("get_venue_info", {"topic": "regler"}, ctx)

        assert result["answer"] == "Musiken ska vara avstängd senast 01:00."

    def test_unknown_topic(self, ctx):
        result = execute_tool("get_venue_info", {"topic": "husdjur"}, ctx)

        assert result == {"found": False, "answer": NO_INFO_ANSWER}


class TestProposeBooking:
    def args(self, event_date, **overrides):
        data = {
            "date": event_date.isoformat(),
            "start_time": "18:00",
            "end_time": "23:00",
            "guest_count": 40,
            "event_type": "Fest",
        }
        data.update(overrides)
        return data

    def test_draft_summary_writes_nothing(self, db, ctx, venue, future_date):
        result = execute_tool("propose_booking", self.args(future_date), ctx)

        summary = result["booking_summary"]
        assert result["success"] is True
        assert summary["venue_id"] == venue.id
        assert summary["date"] == future_date.isoformat()
        assert summary["event_type"] == "fest"
        assert summary["total_price"] == 20160
        assert summary["status"] == "draft"
        assert db.query(BookingRequest).count() == 0

    def test_over_capacity(self, ctx, future_date):
        result = execute_tool("propose_booking", self.args(future_date, guest_count=80), ctx)

        assert result == {"error": "Lokalen har max 60 gäster"}

    def test_unknown_event_type(self, ctx, future_date):
        result = execute_tool("propose_booking", self.args(future_date, event_type="rave"), ctx)

        assert result["error"].startswith("Ogiltig eventtyp")

    def test_booked_date(self, ctx, future_date, make_booking):
        make_booking(future_date)

        result = execute_tool("propose_booking", self.args(future_date), ctx)

        assert result["error"] == "Datumet är inte tillgängligt"
        assert result["alternatives"]

    def test_bad_time_format(self, ctx, future_date):
        result = execute_tool("propose_booking", self.args(future_date, start_time="6pm"), ctx)

        assert result["error"] == "Ogiltiga argument"


class TestEscalateToOwner:
    def test_creates_action_and_waits_for_owner(self, db, ctx, conversation, owner):
        result = execute_tool(
            "escalate_to_owner",
            {"reason": "Specialönskemål", "question": "Får vi ta med egen DJ?"},
            ctx,
        )

        action = db.query(AgentAction).filter(AgentAction.id == result["action_id"]).one()
        assert action.action_type == "escalation"
        assert action.status == "pending"
        assert action.summary["question"] == "Får vi ta med egen DJ?"

        db.refresh(conversation)
        assert conversation.status == "waiting_for_owner"
        assert conversation.version == 1

        notification = db.query(Notification).filter(Notification.recipient_id == owner.sub).one()
        assert notification.reference_kind == "agent_action"
        assert notification.reference_id == action.id
