# venue_booking/crud/crud_agent_action.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from venue_booking.models.agent_action import AgentAction


def get(db: Session, action_id: str) -> Optional[AgentAction]:
    return (
        db.query(AgentAction)
        .options(joinedload(AgentAction.venue))
        .filter(AgentAction.id == action_id)
        .first()
    )


def get_pending_for_venue(db: Session, venue_id: str) -> List[AgentAction]:
    return (
        db.query(AgentAction)
        .filter(AgentAction.venue_id == venue_id, AgentAction.status == "pending")
        .order_by(AgentAction.created_at.desc())
        .all()
    )


def create(db: Session, *, obj_in: Dict[str, Any], commit: bool = True) -> AgentAction:
    action = AgentAction(status="pending", **obj_in)
    db.add(action)
    if commit:
        db.commit()
        db.refresh(action)
    else:
        db.flush()
    return action


def resolve(
    db: Session,
    action: AgentAction,
    status: str,
    *,
    owner_response: Optional[Dict[str, Any]] = None,
    commit: bool = True,
) -> AgentAction:
    action.status = status
    action.resolved_at = datetime.now(timezone.utc)
    if owner_response is not None:
        action.owner_response = owner_response
    if commit:
        db.commit()
        db.refresh(action)
    return action
