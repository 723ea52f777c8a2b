# venue_booking/services/agent/orchestrator.py
"""
Agent Orchestrator
Turns one customer message into one agent reply, running the model's tool
calls in between.

The loop is bounded by MAX_TOOL_ITERATIONS model calls and the context by
the last MAX_HISTORY_MESSAGES conversation messages. The whole turn (user
message, tool rounds, reply) is persisted in a single versioned append.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from venue_booking.core.circuit_breaker import CircuitBreakerError
from venue_booking.core.config import settings
from venue_booking.core.llm_client import LLMClient, LLMNotConfiguredError, get_llm_client
from venue_booking.crud import crud_agent_conversation
from venue_booking.models.agent_conversation import AgentConversation
from venue_booking.models.venue import Venue
from venue_booking.models.venue_agent_config import VenueAgentConfig
from venue_booking.schemas.agent import BookingSummary
from venue_booking.services.agent.executor import ToolContext, execute_tool
from venue_booking.services.agent.system_prompt import ACKNOWLEDGEMENT, build_system_prompt
from venue_booking.services.agent.tools import tool_declarations

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "Ursäkta, jag kan inte svara just nu på grund av ett tekniskt problem. "
    "Försök igen om en stund eller kontakta lokalen direkt."
)
FALLBACK_MESSAGE = (
    "Jag behöver lite mer tid för att reda ut det här. Kan du beskriva vad du "
    "vill ha hjälp med lite närmare?"
)


@dataclass
class TurnResult:
    conversation_id: str
    message: str
    status: str
    booking_summary: Optional[BookingSummary] = None


def history_to_llm(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """User and agent text turns only; system notes and tool rounds stay out."""
    turns = []
    for message in messages:
        content = (message.get("content") or "").strip()
        if not content:
            continue
        if message.get("role") == "user":
            turns.append({"role": "user", "content": content})
        elif message.get("role") == "agent":
            turns.append({"role": "assistant", "content": content})
    return turns


class AgentOrchestrator:
    """
    Runs the tool-calling loop for the venue booking agent.

    Tool executions touch the database and run in a worker thread; the model
    calls go through LLMClient, which retries transient failures.
    """

    MAX_TOOL_ITERATIONS = settings.AGENT_MAX_TOOL_ITERATIONS
    MAX_HISTORY_MESSAGES = settings.AGENT_MAX_HISTORY_MESSAGES

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        max_tool_iterations: Optional[int] = None,
        max_history_messages: Optional[int] = None,
    ):
        self.llm = llm or get_llm_client()
        self.max_tool_iterations = max_tool_iterations or self.MAX_TOOL_ITERATIONS
        self.max_history_messages = max_history_messages or self.MAX_HISTORY_MESSAGES

    def build_context(self, system_prompt: str, messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        recent = messages[-self.max_history_messages:]
        return [
            {"role": "user", "content": system_prompt},
            {"role": "assistant", "content": ACKNOWLEDGEMENT},
        ] + history_to_llm(recent)

    async def _run_loop(
        self, context: List[Dict[str, Any]], ctx: ToolContext
    ) -> tuple[str, List[Dict[str, Any]], Optional[BookingSummary]]:
        """Returns (reply, tool-round messages to persist, latest draft summary)."""
        tools = tool_declarations()
        rounds: List[Dict[str, Any]] = []
        summary: Optional[BookingSummary] = None

        for iteration in range(1, self.max_tool_iterations + 1):
            try:
                response = await self.llm.complete(context, tools=tools)
            except LLMNotConfiguredError:
                logger.error("Agent turn without a configured LLM")
                return APOLOGY_MESSAGE, rounds, summary
            except CircuitBreakerError:
                return APOLOGY_MESSAGE, rounds, summary
            except Exception as e:
                logger.error(f"LLM unavailable for conversation {ctx.conversation_id}: {e}")
                return APOLOGY_MESSAGE, rounds, summary

            if not response.has_tool_calls:
                return response.text or FALLBACK_MESSAGE, rounds, summary

            context.append({"role": "assistant", "content": response.content})
            result_blocks = []
            calls = []
            results = []
            for tool_use in response.tool_uses:
                result = await asyncio.to_thread(execute_tool, tool_use.name, tool_use.input, ctx)
                logger.info(
                    f"Tool {tool_use.name} (iteration {iteration}) in conversation "
                    f"{ctx.conversation_id}: {'error' if 'error' in result else 'ok'}"
                )
                if "booking_summary" in result:
                    summary = BookingSummary.model_validate(result["booking_summary"])
                calls.append({"name": tool_use.name, "args": tool_use.input})
                results.append({"name": tool_use.name, "result": result})
                result_blocks.append({
                    "type": "tool_result",
                    "tool_use_id": tool_use.id,
                    "content": json.dumps(result, ensure_ascii=False, default=str),
                    "is_error": "error" in result,
                })
            context.append({"role": "user", "content": result_blocks})
            rounds.append(crud_agent_conversation.new_message(
                "agent", response.text, tool_calls=calls, tool_results=results
            ))

        logger.warning(
            f"Tool loop hit {self.max_tool_iterations} iterations in conversation "
            f"{ctx.conversation_id}"
        )
        return FALLBACK_MESSAGE, rounds, summary

    async def handle_message(
        self,
        db: Session,
        *,
        venue: Venue,
        conversation: AgentConversation,
        message: str,
        customer_id: Optional[str] = None,
        config: Optional[VenueAgentConfig] = None,
        today: Optional[date] = None,
    ) -> TurnResult:
        base_version = conversation.version
        user_message = crud_agent_conversation.new_message("user", message)
        history = list(conversation.messages or []) + [user_message]

        ctx = ToolContext(
            db=db,
            venue=venue,
            conversation_id=conversation.id,
            config=config,
            customer_id=customer_id,
            today=today or date.today(),
        )

        if self.llm.is_configured:
            system_prompt = await asyncio.to_thread(
                build_system_prompt, db, venue, config, ctx.today
            )
            reply, rounds, summary = await self._run_loop(
                self.build_context(system_prompt, history), ctx
            )
        else:
            reply, rounds, summary = APOLOGY_MESSAGE, [], None

        turn = [user_message] + rounds + [crud_agent_conversation.new_message("agent", reply)]
        conversation = await asyncio.to_thread(
            crud_agent_conversation.append_messages,
            db, conversation, turn, expected_version=base_version,
        )
        return TurnResult(
            conversation_id=conversation.id,
            message=reply,
            status=conversation.status,
            booking_summary=summary,
        )
