"""Tests for the in-process chat event hub."""

from __future__ import annotations

import logging

import pytest

from app.services.notifications import MESSAGE_POSTED, ROOM_CREATED, ChatEventHub


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.mark.anyio
async def test_publish_reaches_subscribers_once():
    hub = ChatEventHub()
    received: list[dict] = []

    async def subscriber(event: dict) -> None:
        received.append(event)

    await hub.subscribe(MESSAGE_POSTED, subscriber)
    await hub.subscribe(MESSAGE_POSTED, subscriber)
    await hub.message_posted(
        room_id=1, message_id=5, sender_id=2, recipient_ids=[4, 3, 3], mentioned_ids=[4]
    )
    await hub.room_created(room_id=1, room_type="group", member_ids=[2, 3, 4])

    assert received == [
        {
            "type": MESSAGE_POSTED,
            "room_id": 1,
            "message_id": 5,
            "sender_id": 2,
            "recipient_ids": [3, 4],
            "mentioned_ids": [4],
        }
    ]


@pytest.mark.anyio
async def test_failing_subscriber_does_not_break_others(caplog):
    hub = ChatEventHub()
    received: list[dict] = []

    async def broken(event: dict) -> None:
        raise RuntimeError("mailer down")

    async def healthy(event: dict) -> None:
        received.append(event)

    await hub.subscribe(ROOM_CREATED, broken)
    await hub.subscribe(ROOM_CREATED, healthy)

    with caplog.at_level(logging.ERROR, logger="app.services.notifications"):
        await hub.room_created(room_id=9, room_type="direct", member_ids=[2, 1])

    assert received[0]["member_ids"] == [1, 2]
    assert any("subscriber failed" in record.getMessage() for record in caplog.records)


@pytest.mark.anyio
async def test_unsubscribe_stops_delivery():
    hub = ChatEventHub()
    received: list[dict] = []

    async def subscriber(event: dict) -> None:
        received.append(event)

    await hub.subscribe(ROOM_CREATED, subscriber)
    await hub.unsubscribe(ROOM_CREATED, subscriber)
    await hub.unsubscribe(ROOM_CREATED, subscriber)
    await hub.room_created(room_id=1, room_type="direct", member_ids=[1, 2])

    assert received == []
