# venue_booking/services/agent/actions.py
"""
What happens around the agent's draft booking.

The customer confirms the draft (the date is claimed for real here), which
queues an AgentAction for the owner. The owner then approves, declines or
counters it, or answers an escalation. Each owner decision is broadcast on
the conversation's ``agent:`` topic so an open chat updates in place.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from venue_booking.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from venue_booking.crud import crud_agent_action, crud_agent_conversation
from venue_booking.models.agent_action import AgentAction
from venue_booking.models.booking_modification import BookingModification
from venue_booking.schemas.agent import (
    BookingSummary,
    ConfirmBookingRequest,
    ConfirmBookingResponse,
    ConversationStatus,
    ModifyActionRequest,
)
from venue_booking.schemas.booking import BookingCreate
from venue_booking.schemas.modification import ModificationPropose
from venue_booking.schemas.token import TokenPayload
from venue_booking.services import booking_lifecycle, modification_service
from venue_booking.services.booking_creator import create_booking, format_date_sv
from venue_booking.services.realtime import RealtimeAction, agent_topic, publish_event

logger = logging.getLogger(__name__)


def _system_note(db: Session, conversation_id: str, content: str) -> None:
    conversation = crud_agent_conversation.get(db, conversation_id)
    if conversation is None:
        return
    crud_agent_conversation.append_messages(
        db, conversation, [crud_agent_conversation.new_message("system", content)]
    )


def confirm_booking(
    db: Session,
    *,
    conversation_id: str,
    request: ConfirmBookingRequest,
    customer: Optional[TokenPayload],
    client_key: Optional[str] = None,
) -> ConfirmBookingResponse:
    """
    Customer confirms the agent's draft. Runs the normal booking creation,
    so validation, pricing and the atomic date claim are the same as for
    the booking form.
    """
    conversation = crud_agent_conversation.get(db, conversation_id)
    if conversation is None:
        raise NotFoundError("Konversationen hittades inte", resource="conversation")
    if customer is None:
        raise AuthenticationError("Du måste vara inloggad för att boka")
    summary: BookingSummary = request.summary
    if summary.venue_id != conversation.venue_id:
        raise ValidationError("Förslaget gäller en annan lokal", field="summary")
    if conversation.customer_id and conversation.customer_id != customer.sub:
        raise AuthorizationError()

    result = create_booking(
        db,
        obj_in=BookingCreate(
            venue_id=summary.venue_id,
            event_date=summary.date,
            start_time=summary.start_time,
            end_time=summary.end_time,
            event_type=summary.event_type,
            guest_count=summary.guest_count,
            customer_name=request.customer_name or customer.name,
            customer_email=request.customer_email or customer.email,
            customer_phone=request.customer_phone,
            company_name=request.company_name,
            event_description=summary.customer_note,
        ),
        customer=customer,
        client_key=client_key,
    )

    sent = summary.model_copy(update={"status": "sent"})
    action = crud_agent_action.create(
        db,
        obj_in={
            "conversation_id": conversation.id,
            "venue_id": conversation.venue_id,
            "customer_id": customer.sub,
            "action_type": "booking_approval",
            "summary": {**sent.model_dump(mode="json"), "booking_id": result.booking_id},
            "booking_request_id": result.booking_id,
        },
        commit=False,
    )
    if conversation.customer_id is None:
        conversation.customer_id = customer.sub
    crud_agent_conversation.set_status(
        db, conversation.id, ConversationStatus.WAITING_FOR_OWNER, commit=False
    )
    db.commit()

    _system_note(
        db, conversation.id,
        f"Bokningsförfrågan för {format_date_sv(summary.date)} är skickad till lokalägaren.",
    )
    logger.info(
        f"Conversation {conversation.id} confirmed booking {result.booking_id} (action {action.id})"
    )
    return ConfirmBookingResponse(
        booking_id=result.booking_id,
        verification_token=result.verification_token,
        action_id=action.id,
    )


def _load_pending(db: Session, action_id: str, owner: TokenPayload) -> AgentAction:
    action = crud_agent_action.get(db, action_id)
    if action is None:
        raise NotFoundError("Åtgärden hittades inte", resource="agent_action")
    if action.venue.owner_id != owner.sub:
        raise AuthorizationError()
    if action.status != "pending":
        raise ValidationError("Åtgärden är redan hanterad")
    return action


def _require_booking(action: AgentAction) -> str:
    if action.action_type != "booking_approval" or not action.booking_request_id:
        raise ValidationError("Åtgärden gäller ingen bokning")
    return action.booking_request_id


def approve_action(db: Session, *, action_id: str, owner: TokenPayload) -> AgentAction:
    action = _load_pending(db, action_id, owner)
    booking = booking_lifecycle.accept_booking(
        db, booking_id=_require_booking(action), user=owner
    )

    crud_agent_action.resolve(db, action, "approved", commit=False)
    crud_agent_conversation.set_status(
        db, action.conversation_id, ConversationStatus.COMPLETED, commit=False
    )
    db.commit()
    _system_note(db, action.conversation_id, "Lokalägaren har godkänt bokningen.")

    publish_event(
        agent_topic(action.conversation_id), RealtimeAction.APPROVED,
        sender=owner.sub, data={"action_id": action.id, "booking_id": booking.id},
    )
    return action


def decline_action(
    db: Session, *, action_id: str, owner: TokenPayload, reason: Optional[str] = None
) -> AgentAction:
    action = _load_pending(db, action_id, owner)
    booking_id = None
    if action.action_type == "booking_approval":
        booking_id = _require_booking(action)
        booking_lifecycle.decline_booking(db, booking_id=booking_id, user=owner, reason=reason)

    crud_agent_action.resolve(
        db, action, "declined",
        owner_response={"reason": reason} if reason else None, commit=False,
    )
    crud_agent_conversation.set_status(
        db, action.conversation_id, ConversationStatus.ACTIVE, commit=False
    )
    db.commit()
    note = "Lokalägaren har tyvärr nekat förfrågan."
    if reason:
        note = f"{note} Anledning: {reason}"
    _system_note(db, action.conversation_id, note)

    publish_event(
        agent_topic(action.conversation_id), RealtimeAction.DECLINED,
        sender=owner.sub, message=reason,
        data={"action_id": action.id, "booking_id": booking_id},
    )
    return action


def modify_action(
    db: Session, *, action_id: str, owner: TokenPayload, request: ModifyActionRequest
) -> BookingModification:
    """Owner counters the request with a modification proposal on the booking."""
    action = _load_pending(db, action_id, owner)
    booking_id = _require_booking(action)

    modification = modification_service.propose(
        db,
        booking_id=booking_id,
        changes=ModificationPropose(
            proposed_event_date=request.suggested_date,
            proposed_start_time=request.suggested_start_time,
            proposed_end_time=request.suggested_end_time,
            proposed_base_price=request.adjusted_price,
            reason=request.note,
        ),
        user=owner,
    )

    action = crud_agent_action.get(db, action_id)
    crud_agent_action.resolve(
        db, action, "modified",
        owner_response={
            **request.model_dump(mode="json", exclude_none=True),
            "modification_id": modification.id,
        },
        commit=False,
    )
    crud_agent_conversation.set_status(
        db, action.conversation_id, ConversationStatus.ACTIVE, commit=False
    )
    db.commit()
    _system_note(db, action.conversation_id, "Lokalägaren har skickat ett motförslag.")
    # propose() already broadcast MODIFIED on the conversation's topic
    return modification


def reply_to_escalation(
    db: Session, *, action_id: str, owner: TokenPayload, response: str
) -> AgentAction:
    action = _load_pending(db, action_id, owner)
    if action.action_type != "escalation":
        raise ValidationError("Åtgärden är ingen fråga till lokalägaren")

    crud_agent_action.resolve(
        db, action, "approved", owner_response={"response": response}, commit=False
    )
    crud_agent_conversation.set_status(
        db, action.conversation_id, ConversationStatus.ACTIVE, commit=False
    )
    db.commit()
    _system_note(db, action.conversation_id, f"[Svar från lokalägaren]: {response}")

    publish_event(
        agent_topic(action.conversation_id), RealtimeAction.APPROVED,
        sender=owner.sub, message=response, data={"action_id": action.id},
    )
    return action
