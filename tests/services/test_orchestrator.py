"""
Unit tests for the agent orchestrator.

The LLM is an AsyncMock returning scripted LLMResponse objects; the tools
run for real against the test database.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from venue_booking.core.llm_client import LLMResponse, ToolUse
from venue_booking.crud import crud_agent_conversation
from venue_booking.models import BookingRequest
from venue_booking.services.agent.orchestrator import (
    APOLOGY_MESSAGE,
    FALLBACK_MESSAGE,
    AgentOrchestrator,
    history_to_llm,
)
from venue_booking.services.agent.system_prompt import ACKNOWLEDGEMENT


def tool_call(name, args, call_id="toolu_1", text=""):
    return LLMResponse(
        text=text,
        tool_uses=[ToolUse(id=call_id, name=name, input=args)],
        content=[{"type": "tool_use", "id": call_id, "name": name, "input": args}],
        stop_reason="tool_use",
    )


def scripted_llm(*responses):
    llm = MagicMock()
    llm.is_configured = True
    llm.complete = AsyncMock(side_effect=list(responses))
    return llm


@pytest.fixture
def conversation(db, venue):
    return crud_agent_conversation.get_or_create(db, venue_id=venue.id, customer_id="customer_1")


class TestHistory:
    def test_only_text_turns_reach_the_model(self):
        messages = [
            {"role": "user", "content": "Hej"},
            {"role": "agent", "content": "", "tool_calls": [{"name": "check_availability"}]},
            {"role": "agent", "content": "Datumet är ledigt"},
            {"role": "system", "content": "Bokningsförfrågan skickad"},
        ]

        assert history_to_llm(messages) == [
            {"role": "user", "content": "Hej"},
            {"role": "assistant", "content": "Datumet är ledigt"},
        ]

    def test_context_is_truncated(self):
        orchestrator = AgentOrchestrator(llm=MagicMock(), max_history_messages=4)
        messages = [
            {"role": "user" if i % 2 == 0 else "agent", "content": f"meddelande {i}"}
            for i in range(10)
        ]

        context = orchestrator.build_context("PROMPT", messages)

        assert context[0] == {"role": "user", "content": "PROMPT"}
        assert context[1] == {"role": "assistant", "content": ACKNOWLEDGEMENT}
        assert [m["content"] for m in context[2:]] == [f"meddelande {i}" for i in range(6, 10)]


class TestHandleMessage:
    @pytest.mark.asyncio
    async def test_plain_reply_is_persisted(self, db, venue, agent_config, conversation):
        llm = scripted_llm(LLMResponse(text="Välkommen till Ljusgården!"))

        result = await AgentOrchestrator(llm=llm).handle_message(
            db, venue=venue, conversation=conversation, message="Hej", config=agent_config,
        )

        assert result.message == "Välkommen till Ljusgården!"
        assert result.status == "active"
        db.refresh(conversation)
        assert conversation.version == 2
        assert [(m["role"], m["content"]) for m in conversation.messages] == [
            ("user", "Hej"),
            ("agent", "Välkommen till Ljusgården!"),
        ]
        system_prompt = llm.complete.await_args.args[0][0]["content"]
        assert "Ljusgården" in system_prompt

    @pytest.mark.asyncio
    async def test_loop_stops_after_max_iterations(self, db, venue, agent_config, conversation, future_date):
        llm = MagicMock()
        llm.is_configured = True
        llm.complete = AsyncMock(
            return_value=tool_call("check_availability", {"date": future_date.isoformat()})
        )

        result = await AgentOrchestrator(llm=llm, max_tool_iterations=3).handle_message(
            db, venue=venue, conversation=conversation, message="Är ni lediga?", config=agent_config,
        )

        assert result.message == FALLBACK_MESSAGE
        assert llm.complete.await_count == 3
        db.refresh(conversation)
        tool_rounds = [m for m in conversation.messages if m.get("tool_calls")]
        assert len(tool_rounds) == 3
        assert conversation.messages[-1]["content"] == FALLBACK_MESSAGE

    @pytest.mark.asyncio
    async def test_llm_failure_apologises(self, db, venue, agent_config, conversation):
        llm = scripted_llm(RuntimeError("overloaded"))

        result = await AgentOrchestrator(llm=llm).handle_message(
            db, venue=venue, conversation=conversation, message="Hej", config=agent_config,
        )

        assert result.message == APOLOGY_MESSAGE
        db.refresh(conversation)
        assert [m["role"] for m in conversation.messages] == ["user", "agent"]

    @pytest.mark.asyncio
    async def test_unconfigured_llm_is_never_called(self, db, venue, agent_config, conversation):
        llm = scripted_llm()
        llm.is_configured = False

        result = await AgentOrchestrator(llm=llm).handle_message(
            db, venue=venue, conversation=conversation, message="Hej", config=agent_config,
        )

        assert result.message == APOLOGY_MESSAGE
        llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_tool_error_is_fed_back(self, db, venue, agent_config, conversation):
        llm = scripted_llm(
            tool_call("book_now", {"date": "2030-01-01"}),
            LLMResponse(text="Jag kan tyvärr inte boka direkt, men jag kan ta fram ett förslag."),
        )

        result = await AgentOrchestrator(llm=llm).handle_message(
            db, venue=venue, conversation=conversation, message="Boka nu!", config=agent_config,
        )

        assert result.message.startswith("Jag kan tyvärr inte boka direkt")
        context = llm.complete.await_args_list[1].args[0]
        tool_result = context[-1]["content"][0]
        assert context[-1]["role"] == "user"
        assert tool_result["type"] == "tool_result"
        assert tool_result["tool_use_id"] == "toolu_1"
        assert tool_result["is_error"] is True
        assert "Okänt verktyg" in tool_result["content"]

    @pytest.mark.asyncio
    async def test_booking_summary_is_surfaced(self, db, venue, agent_config, conversation, future_date):
        llm = scripted_llm(
            tool_call("propose_booking", {
                "date": future_date.isoformat(),
                "start_time": "18:00",
                "end_time": "23:00",
                "guest_count": 40,
                "event_type": "fest",
            }),
            LLMResponse(text="Här är ditt bokningsförslag. Bekräfta om allt ser rätt ut."),
        )

        result = await AgentOrchestrator(llm=llm).handle_message(
            db, venue=venue, conversation=conversation, message="Vi vill boka", config=agent_config,
        )

        assert result.booking_summary is not None
        assert result.booking_summary.date == future_date
        assert result.booking_summary.total_price == 20160
        assert result.booking_summary.status == "draft"
        assert db.query(BookingRequest).count() == 0

    @pytest.mark.asyncio
    async def test_escalation_keeps_waiting_status(self, db, venue, agent_config, conversation):
        llm = scripted_llm(
            tool_call("escalate_to_owner", {"reason": "Okänd fråga", "question": "Får vi ha hund med?"}),
            LLMResponse(text="Jag har frågat lokalägaren och återkommer."),
        )

        result = await AgentOrchestrator(llm=llm).handle_message(
            db, venue=venue, conversation=conversation, message="Får vi ha hund med?",
            config=agent_config,
        )

        assert result.status == "waiting_for_owner"
        db.refresh(conversation)
        assert conversation.version == 2
