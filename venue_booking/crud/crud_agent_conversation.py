# venue_booking/crud/crud_agent_conversation.py
"""
Versioned store for agent conversations.

The message list is rewritten whole on every turn. Writers compare-and-swap
on ``version`` so two turns on the same conversation can never silently
overwrite each other: a stale writer reloads, re-appends its own messages on
top of the fresh list and tries again.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from venue_booking.core.config import settings
from venue_booking.core.exceptions import ConflictError, CONVERSATION_CONFLICT
from venue_booking.models.agent_conversation import AgentConversation
from venue_booking.schemas.agent import ConversationStatus

logger = logging.getLogger(__name__)

MAX_APPEND_ATTEMPTS = 3


def new_message(role: str, content: str, **extra: Any) -> Dict[str, Any]:
    message = {
        "id": f"msg_{uuid.uuid4().hex[:12]}",
        "role": role,
        "content": content,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    message.update({k: v for k, v in extra.items() if v is not None})
    return message


def _is_live(conversation: AgentConversation, now: datetime) -> bool:
    expires_at = conversation.expires_at
    if expires_at is None:
        return True
    # SQLite hands back naive datetimes
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at > now


def get(db: Session, conversation_id: str) -> Optional[AgentConversation]:
    return db.query(AgentConversation).filter(AgentConversation.id == conversation_id).first()


def get_or_create(
    db: Session,
    *,
    venue_id: str,
    conversation_id: Optional[str] = None,
    customer_id: Optional[str] = None,
) -> AgentConversation:
    """
    Resolve the conversation for this turn.

    An explicit id wins when it belongs to the venue and has not expired,
    then the customer's latest active conversation with the venue, else a
    new one is created.
    """
    now = datetime.now(timezone.utc)

    if conversation_id:
        conversation = get(db, conversation_id)
        if conversation and conversation.venue_id == venue_id and _is_live(conversation, now):
            return conversation

    if customer_id:
        conversation = (
            db.query(AgentConversation)
            .filter(
                AgentConversation.venue_id == venue_id,
                AgentConversation.customer_id == customer_id,
                AgentConversation.status == ConversationStatus.ACTIVE,
            )
            .order_by(AgentConversation.updated_at.desc())
            .first()
        )
        if conversation and _is_live(conversation, now):
            return conversation

    conversation = AgentConversation(
        venue_id=venue_id,
        customer_id=customer_id,
        messages=[],
        version=1,
        status=ConversationStatus.ACTIVE,
        expires_at=now + timedelta(days=settings.AGENT_CONVERSATION_TTL_DAYS),
    )
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    logger.info(f"Created agent conversation {conversation.id} for venue {venue_id}")
    return conversation


def append_messages(
    db: Session,
    conversation: AgentConversation,
    new_messages: List[Dict[str, Any]],
    *,
    expected_version: Optional[int] = None,
) -> AgentConversation:
    """
    Append ``new_messages`` with a compare-and-swap on ``version``.

    ``expected_version`` is the version the caller built its turn on; it
    defaults to the version currently loaded. Raises ConflictError when the
    row keeps moving underneath for MAX_APPEND_ATTEMPTS tries.
    """
    version = conversation.version if expected_version is None else expected_version
    base = list(conversation.messages or [])

    for attempt in range(1, MAX_APPEND_ATTEMPTS + 1):
        updated = (
            db.query(AgentConversation)
            .filter(
                AgentConversation.id == conversation.id,
                AgentConversation.version == version,
            )
            .update(
                {
                    "messages": base + list(new_messages),
                    "version": version + 1,
                    "updated_at": datetime.now(timezone.utc),
                },
                synchronize_session=False,
            )
        )
        if updated == 1:
            db.commit()
            db.refresh(conversation)
            return conversation

        db.rollback()
        logger.warning(
            f"Stale write on conversation {conversation.id} at version {version} "
            f"(attempt {attempt}/{MAX_APPEND_ATTEMPTS})"
        )
        db.refresh(conversation)
        version = conversation.version
        base = list(conversation.messages or [])

    raise ConflictError(
        "Konversationen uppdaterades samtidigt, försök igen",
        error_code=CONVERSATION_CONFLICT,
    )


def set_status(db: Session, conversation_id: str, status: str, *, commit: bool = True) -> None:
    """Status lives outside the versioned message list."""
    db.query(AgentConversation).filter(AgentConversation.id == conversation_id).update(
        {"status": status}, synchronize_session=False
    )
    if commit:
        db.commit()
