# venue_booking/api/v1/endpoints/realtime.py
"""Server-Sent Events relay of realtime envelopes for one booking or conversation."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from venue_booking.api import deps
from venue_booking.core.exceptions import AuthorizationError, NotFoundError
from venue_booking.crud import crud_agent_conversation, crud_booking_request
from venue_booking.db.redis import get_async_redis_client
from venue_booking.schemas.token import TokenPayload
from venue_booking.services.realtime import (
    TopicKind,
    agent_topic,
    booking_topic,
    encode_sse,
    stream_topic,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["Realtime"])


def resolve_topic(db: Session, kind: TopicKind, entity_id: str, user: TokenPayload) -> str:
    """Topic name for ``entity_id`` if ``user`` is one of its parties."""
    if kind == TopicKind.BOOKING:
        booking = crud_booking_request.get(db, entity_id)
        if not booking:
            raise NotFoundError("Bokningen hittades inte", resource="booking")
        if user.sub not in (booking.customer_id, booking.venue.owner_id):
            raise AuthorizationError()
        return booking_topic(booking.id)

    conversation = crud_agent_conversation.get(db, entity_id)
    if not conversation:
        raise NotFoundError("Konversationen hittades inte", resource="conversation")
    if user.sub not in (conversation.customer_id, conversation.venue.owner_id):
        raise AuthorizationError()
    return agent_topic(conversation.id)


@router.get("/{kind}/{entity_id}/stream")
async def stream(
    kind: TopicKind,
    entity_id: str,
    request: Request,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Live updates for one party. Envelopes this user published are not echoed
    back. Delivery is best effort: refetch the entity after a reconnect.
    """
    topic = resolve_topic(db, kind, entity_id, current_user)

    async def event_stream():
        client = get_async_redis_client()
        pubsub = client.pubsub()
        logger.info(f"SSE subscriber {current_user.sub} joined {topic}")
        try:
            async for event in stream_topic(pubsub, topic, current_user.sub):
                if await request.is_disconnected():
                    break
                yield encode_sse(event)
        finally:
            await pubsub.aclose()
            await client.aclose()
            logger.info(f"SSE subscriber {current_user.sub} left {topic}")

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
