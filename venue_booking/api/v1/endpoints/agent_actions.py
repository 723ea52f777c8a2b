# venue_booking/api/v1/endpoints/agent_actions.py
"""Venue owner's queue of requests raised by the booking agent."""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from venue_booking.api import deps
from venue_booking.core.exceptions import AuthorizationError, NotFoundError
from venue_booking.crud import crud_agent_action, crud_venue
from venue_booking.schemas.agent import (
    AgentActionResult,
    DeclineActionRequest,
    ModifyActionRequest,
    ReplyToEscalationRequest,
)
from venue_booking.schemas.token import TokenPayload
from venue_booking.services.agent import actions

router = APIRouter(tags=["Agent Actions"])


@router.get("/venues/{venue_id}/agent-actions")
def list_pending_actions(
    venue_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
) -> List[Dict[str, Any]]:
    venue = crud_venue.get(db, venue_id)
    if not venue:
        raise NotFoundError("Lokalen hittades inte", resource="venue")
    if venue.owner_id != current_user.sub:
        raise AuthorizationError()
    return [
        {
            "id": action.id,
            "conversation_id": action.conversation_id,
            "action_type": action.action_type,
            "status": action.status,
            "summary": action.summary,
            "booking_request_id": action.booking_request_id,
            "created_at": action.created_at,
        }
        for action in crud_agent_action.get_pending_for_venue(db, venue_id)
    ]


@router.post("/agent-actions/{action_id}/approve", response_model=AgentActionResult)
def approve_action(
    action_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    action = actions.approve_action(db, action_id=action_id, owner=current_user)
    return AgentActionResult(booking_id=action.booking_request_id)


@router.post("/agent-actions/{action_id}/decline", response_model=AgentActionResult)
def decline_action(
    action_id: str,
    body: DeclineActionRequest,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    action = actions.decline_action(
        db, action_id=action_id, owner=current_user, reason=body.reason
    )
    return AgentActionResult(booking_id=action.booking_request_id)


@router.post("/agent-actions/{action_id}/modify", response_model=AgentActionResult)
def modify_action(
    action_id: str,
    body: ModifyActionRequest,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    modification = actions.modify_action(
        db, action_id=action_id, owner=current_user, request=body
    )
    return AgentActionResult(
        booking_id=modification.booking_request_id, modification_id=modification.id
    )


@router.post("/agent-actions/{action_id}/reply", response_model=AgentActionResult)
def reply_to_escalation(
    action_id: str,
    body: ReplyToEscalationRequest,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    actions.reply_to_escalation(
        db, action_id=action_id, owner=current_user, response=body.response
    )
    return AgentActionResult()
