# venue_booking/services/realtime.py
"""
Realtime synchronisation between the two parties of a booking.

Publishing: every resolving transition emits a small versioned envelope on a
topic scoped to the booking (``booking:{id}``) or the agent conversation
(``agent:{id}``). Delivery is best effort and at most once, so subscribers
treat an envelope as a prompt to refetch when precision matters.

Receiving: a party that acted has already updated its own view, so the
stream never echoes an envelope back to its sender. ``ProposalReconciler``
models a client view with the two inputs kept apart (the local optimistic
update and the remote broadcast) and applies each event id once.
"""
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from pydantic import BaseModel, Field

from venue_booking.core.circuit_breaker import redis_circuit_breaker, CircuitBreakerError
from venue_booking.db.redis import redis_client

logger = logging.getLogger(__name__)

PAYLOAD_VERSION = 1


class RealtimeAction(str, Enum):
    APPROVED = "approved"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    MODIFIED = "modified"
    CANCELLED = "cancelled"


class TopicKind(str, Enum):
    BOOKING = "booking"
    AGENT = "agent"


def booking_topic(booking_id: str) -> str:
    return f"{TopicKind.BOOKING.value}:{booking_id}"


def agent_topic(conversation_id: str) -> str:
    return f"{TopicKind.AGENT.value}:{conversation_id}"


class RealtimeEvent(BaseModel):
    version: int = PAYLOAD_VERSION
    event_id: str = Field(default_factory=lambda: f"evt_{uuid.uuid4().hex[:16]}")
    topic: str
    action: RealtimeAction
    message: Optional[str] = None
    sender: str
    data: Dict[str, Any] = {}
    sent_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def publish_event(
    topic: str,
    action: RealtimeAction,
    *,
    sender: str,
    message: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> Optional[RealtimeEvent]:
    """
    Broadcast a state change. Returns the envelope, or None when it could not
    be published. Never raises: the state change it reports has already
    committed.
    """
    event = RealtimeEvent(
        topic=topic, action=action, sender=sender, message=message, data=data or {}
    )
    try:
        with redis_circuit_breaker:
            redis_client.publish(topic, event.model_dump_json())
    except CircuitBreakerError:
        logger.warning(f"Skipped realtime publish on {topic}: redis circuit open")
        return None
    except Exception as e:
        logger.error(f"Realtime publish failed on {topic}: {e}")
        return None
    logger.debug(f"Published {action.value} on {topic} from {sender}")
    return event


def should_deliver(event: RealtimeEvent, subscriber_id: str) -> bool:
    """Self-exclusion: a subscriber never receives its own broadcasts."""
    return event.sender != subscriber_id


def decode_event(raw: Any) -> Optional[RealtimeEvent]:
    try:
        return RealtimeEvent.model_validate_json(raw)
    except ValueError:
        logger.warning(f"Dropping malformed realtime payload: {raw!r:.200}")
        return None


async def stream_topic(pubsub, topic: str, subscriber_id: str) -> AsyncIterator[RealtimeEvent]:
    """
    Yield envelopes arriving on ``topic`` for ``subscriber_id``.

    ``pubsub`` is a ``redis.asyncio`` PubSub; it is subscribed here and
    unsubscribed when the consumer stops iterating.
    """
    await pubsub.subscribe(topic)
    try:
        async for item in pubsub.listen():
            if item.get("type") != "message":
                continue
            event = decode_event(item.get("data"))
            if event is not None and should_deliver(event, subscriber_id):
                yield event
    finally:
        await pubsub.unsubscribe(topic)


# ---------------------------------------------------------------------------
# Client-side reconciliation
# ---------------------------------------------------------------------------

STATUS_MESSAGES = {
    RealtimeAction.APPROVED: "Lokalen har godkänt din bokning!",
    RealtimeAction.ACCEPTED: "Ändringsförslaget har godkänts.",
    RealtimeAction.DECLINED: "Tyvärr, lokalen kunde inte godkänna denna bokning.",
    RealtimeAction.MODIFIED: "Lokalen har föreslagit en ändring av bokningen.",
    RealtimeAction.CANCELLED: "Förslaget har dragits tillbaka.",
}

# Card statuses a proposal can end in, keyed by the action that ends it
_TERMINAL_CARD_STATUS = {
    RealtimeAction.APPROVED: "approved",
    RealtimeAction.ACCEPTED: "approved",
    RealtimeAction.DECLINED: "declined",
    RealtimeAction.MODIFIED: "modified",
    RealtimeAction.CANCELLED: "declined",
}


class ChatItem(BaseModel):
    id: str
    role: str
    content: str
    card_status: Optional[str] = None  # draft, sent, approved, declined, modified


class ProposalReconciler:
    """
    One party's view of a conversation.

    ``apply_local`` is the optimistic path for actions this party performed.
    ``apply_remote`` is the broadcast path and ignores the party's own
    envelopes. Either path applies a given event id at most once, so an
    action arriving on both never doubles up.
    """

    def __init__(self, party_id: str, items: Optional[List[ChatItem]] = None):
        self.party_id = party_id
        self.items: List[ChatItem] = list(items or [])
        self._applied: set = set()

    def apply_local(self, event: RealtimeEvent) -> bool:
        return self._apply(event)

    def apply_remote(self, event: RealtimeEvent) -> bool:
        if not should_deliver(event, self.party_id):
            return False
        return self._apply(event)

    def _apply(self, event: RealtimeEvent) -> bool:
        if event.event_id in self._applied:
            return False
        self._applied.add(event.event_id)

        terminal = _TERMINAL_CARD_STATUS[event.action]
        for item in self.items:
            if item.card_status == "sent":
                item.card_status = terminal

        content = STATUS_MESSAGES[event.action]
        if event.action == RealtimeAction.MODIFIED and event.message:
            content = event.message
        elif event.action == RealtimeAction.DECLINED and event.message:
            content = f"{content} ({event.message})"

        self.items.append(ChatItem(id=f"system_{event.event_id}", role="system", content=content))
        return True


def encode_sse(event: RealtimeEvent) -> str:
    return f"id: {event.event_id}\nevent: {event.action.value}\ndata: {event.model_dump_json()}\n\n"

