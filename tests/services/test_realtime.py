"""
Tests for realtime envelopes and the client-side reconciler.

Verifies that:
- A subscriber never receives its own broadcasts
- A publish failure is swallowed and reported as None
- The reconciler applies each event id once, whichever path delivers it
- A sent proposal card moves to its terminal status
"""

import json

import pytest

from venue_booking.services.realtime import (
    ChatItem,
    ProposalReconciler,
    RealtimeAction,
    RealtimeEvent,
    agent_topic,
    decode_event,
    encode_sse,
    publish_event,
    should_deliver,
    stream_topic,
)


def event(action=RealtimeAction.APPROVED, sender="owner_1", **kwargs):
    return RealtimeEvent(topic=agent_topic("conv_1"), action=action, sender=sender, **kwargs)


class TestPublish:
    def test_envelope_is_versioned(self, redis_publish):
        sent = publish_event(agent_topic("conv_1"), RealtimeAction.APPROVED, sender="owner_1")

        topic, raw = redis_publish.call_args.args
        payload = json.loads(raw)
        assert topic == "agent:conv_1"
        assert payload["version"] == 1
        assert payload["event_id"] == sent.event_id
        assert payload["action"] == "approved"

    def test_failure_is_swallowed(self, redis_publish):
        redis_publish.side_effect = ConnectionError("redis down")

        assert publish_event("booking:b1", RealtimeAction.DECLINED, sender="owner_1") is None


def test_self_exclusion():
    assert not should_deliver(event(sender="owner_1"), "owner_1")
    assert should_deliver(event(sender="owner_1"), "customer_1")


def test_decode_drops_garbage():
    assert decode_event("not json") is None
    assert decode_event(event().model_dump_json()).action == RealtimeAction.APPROVED


def test_encode_sse():
    e = event()
    frame = encode_sse(e)

    assert frame.startswith(f"id: {e.event_id}\nevent: approved\ndata: ")
    assert frame.endswith("\n\n")


class TestProposalReconciler:
    def setup_method(self):
        self.view = ProposalReconciler(
            "customer_1",
            items=[
                ChatItem(id="m1", role="agent", content="Här är ditt förslag"),
                ChatItem(id="m2", role="agent", content="Förslag", card_status="sent"),
            ],
        )

    def test_remote_approval_updates_card(self):
        assert self.view.apply_remote(event(RealtimeAction.APPROVED))

        assert self.view.items[1].card_status == "approved"
        assert self.view.items[-1].role == "system"
        assert self.view.items[-1].content == "Lokalen har godkänt din bokning!"

    def test_same_event_applied_once(self):
        e = event(RealtimeAction.DECLINED, message="Fullbokat")

        assert self.view.apply_remote(e)
        assert not self.view.apply_remote(e)
        assert not self.view.apply_local(e)

        system_items = [item for item in self.view.items if item.role == "system"]
        assert len(system_items) == 1
        assert system_items[0].content.endswith("(Fullbokat)")

    def test_own_broadcast_is_ignored(self):
        assert not self.view.apply_remote(event(sender="customer_1"))
        assert self.view.items[1].card_status == "sent"

    def test_local_action_then_echo(self):
        e = event(RealtimeAction.CANCELLED, sender="customer_1")

        assert self.view.apply_local(e)
        assert not self.view.apply_remote(e)
        assert self.view.items[1].card_status == "declined"

    def test_modified_uses_owner_message(self):
        self.view.apply_remote(event(RealtimeAction.MODIFIED, message="Vi föreslår lördag istället"))

        assert self.view.items[1].card_status == "modified"
        assert self.view.items[-1].content == "Vi föreslår lördag istället"


class FakePubSub:
    def __init__(self, items):
        self.items = items
        self.subscribed = []
        self.unsubscribed = []

    async def subscribe(self, topic):
        self.subscribed.append(topic)

    async def unsubscribe(self, topic):
        self.unsubscribed.append(topic)

    async def listen(self):
        for item in self.items:
            yield item


@pytest.mark.asyncio
async def test_stream_topic_filters_own_and_malformed():
    mine = event(sender="customer_1")
    theirs = event(sender="owner_1")
    pubsub = FakePubSub([
        {"type": "subscribe", "data": 1},
        {"type": "message", "data": mine.model_dump_json()},
        {"type": "message", "data": "{broken"},
        {"type": "message", "data": theirs.model_dump_json()},
    ])

    received = [e async for e in stream_topic(pubsub, "agent:conv_1", "customer_1")]

    assert [e.event_id for e in received] == [theirs.event_id]
    assert pubsub.subscribed == ["agent:conv_1"]
    assert pubsub.unsubscribed == ["agent:conv_1"]
