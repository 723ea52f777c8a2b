# venue_booking/api/v1/endpoints/venue_agent.py
"""Customer-facing booking agent for a single venue."""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from venue_booking.api import deps
from venue_booking.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from venue_booking.core.llm_client import LLMClient, get_llm_client
from venue_booking.core.rate_limiter import agent_rate_limiter
from venue_booking.crud import crud_agent_conversation, crud_venue
from venue_booking.schemas.agent import (
    AgentMessageRequest,
    AgentMessageResponse,
    ConfirmBookingRequest,
    ConfirmBookingResponse,
)
from venue_booking.schemas.token import TokenPayload
from venue_booking.services.agent import actions
from venue_booking.services.agent.orchestrator import AgentOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/venue-agent", tags=["Venue Agent"])

MAX_MESSAGE_LENGTH = 2000


@router.post("", response_model=AgentMessageResponse)
async def send_message(
    body: AgentMessageRequest,
    request: Request,
    db: Session = Depends(deps.get_db),
    current_user: Optional[TokenPayload] = Depends(deps.get_current_user_optional),
    llm: LLMClient = Depends(get_llm_client),
):
    """
    One conversational turn with the venue's booking agent.

    Anonymous visitors may chat; booking itself needs a login at confirm time.
    """
    agent_rate_limiter.check(
        current_user.sub if current_user else f"ip:{deps.get_client_key(request)}"
    )

    message = (body.message or "").strip()
    if not body.venue_id or not message:
        raise ValidationError("Saknade fält: venue_id och message krävs.")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError("Meddelandet är för långt", field="message")

    venue = await asyncio.to_thread(crud_venue.get_published, db, body.venue_id)
    if not venue:
        raise NotFoundError("Lokalen hittades inte.", resource="venue")

    config = await asyncio.to_thread(crud_venue.get_agent_config, db, venue.id)
    if not config or not config.is_enabled:
        raise ValidationError("Bokningsagenten är inte aktiverad för denna lokal.")

    if not llm.is_configured:
        logger.error("Venue agent called but no LLM API key is configured")
        raise ExternalServiceError(
            "AI-tjänsten är inte konfigurerad. Kontakta support.",
            service="llm",
            status_code=500,
        )

    customer_id = current_user.sub if current_user else None
    conversation = await asyncio.to_thread(
        crud_agent_conversation.get_or_create,
        db,
        venue_id=venue.id,
        conversation_id=body.conversation_id,
        customer_id=customer_id,
    )

    result = await AgentOrchestrator(llm=llm).handle_message(
        db,
        venue=venue,
        conversation=conversation,
        message=message,
        customer_id=customer_id,
        config=config,
    )
    return AgentMessageResponse(
        conversation_id=result.conversation_id,
        message=result.message,
        booking_summary=result.booking_summary,
        status=result.status,
    )


@router.post("/{conversation_id}/confirm", response_model=ConfirmBookingResponse)
def confirm_booking(
    conversation_id: str,
    body: ConfirmBookingRequest,
    request: Request,
    db: Session = Depends(deps.get_db),
    current_user: Optional[TokenPayload] = Depends(deps.get_current_user_optional),
):
    """Customer confirms the agent's draft; the date is claimed here."""
    return actions.confirm_booking(
        db,
        conversation_id=conversation_id,
        request=body,
        customer=current_user,
        client_key=deps.get_client_key(request),
    )
