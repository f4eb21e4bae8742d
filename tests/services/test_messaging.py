# tests/services/test_messaging.py
"""Tests for message persistence and live delivery."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from huddle.core.errors import Forbidden, NotFound, StorageFailure, ValidationError
from huddle.models import Message, Notification, NotificationType
from huddle.services.messaging import MessageRouter
from tests.conftest import BrokenChannel, RecordingChannel


@pytest.fixture()
def router(db_session, presence) -> MessageRouter:
    return MessageRouter(db_session, presence)


def _notifications(db_session):
    return list(db_session.scalars(select(Notification)))


@pytest.mark.asyncio
async def test_send_then_history(router, alice, bob) -> None:
    """A sent message shows up in the history of both participants."""
    message = await router.send(alice.id, bob.id, "  hi bob  ")

    assert message.text == "hi bob"
    assert [m.id for m in router.history(alice.id, bob.id)] == [message.id]
    assert [m.id for m in router.history(bob.id, alice.id)] == [message.id]


@pytest.mark.asyncio
async def test_history_is_oldest_first(router, alice, bob, carol) -> None:
    await router.send(alice.id, bob.id, "one")
    await router.send(bob.id, alice.id, "two")
    await router.send(alice.id, carol.id, "elsewhere")
    await router.send(alice.id, bob.id, "three")

    assert [m.text for m in router.history(alice.id, bob.id)] == ["one", "two", "three"]


@pytest.mark.asyncio
async def test_offline_recipient_still_gets_message(router, presence, alice, bob) -> None:
    """Nobody is connected, yet the message is stored."""
    await router.send(alice.id, bob.id, "are you there?")

    assert not presence.is_online(bob.id)
    assert [m.text for m in router.history(bob.id, alice.id)] == ["are you there?"]


@pytest.mark.asyncio
async def test_live_delivery_to_recipient_and_sender(router, presence, alice, bob) -> None:
    """Both parties' channels receive the same enriched payload."""
    to_bob, to_alice = RecordingChannel("bob"), RecordingChannel("alice")
    presence.register(bob.id, to_bob)
    presence.register(alice.id, to_alice)

    message = await router.send(alice.id, bob.id, "live")

    [payload] = to_bob.payloads()
    assert payload["id"] == message.id
    assert payload["text"] == "live"
    assert payload["sender"]["username"] == "alice"
    assert payload["sender"]["profile_picture"] == alice.profile_picture
    assert payload["recipient"]["username"] == "bob"
    assert to_alice.payloads() == [payload]


@pytest.mark.asyncio
async def test_delivery_reaches_every_device(router, presence, alice, bob) -> None:
    phone, laptop = RecordingChannel("phone"), RecordingChannel("laptop")
    presence.register(bob.id, phone)
    presence.register(bob.id, laptop)

    await router.send(alice.id, bob.id, "ping")

    assert len(phone.payloads()) == 1
    assert len(laptop.payloads()) == 1


@pytest.mark.asyncio
async def test_self_message_is_delivered_once(router, presence, alice) -> None:
    """Messaging yourself pushes once and notifies nobody."""
    channel = RecordingChannel()
    presence.register(alice.id, channel)

    await router.send(alice.id, alice.id, "memo")

    assert len(channel.payloads()) == 1
    assert _notifications(router.db) == []


@pytest.mark.asyncio
async def test_broken_channel_is_dropped(router, presence, alice, bob) -> None:
    """A failing channel is unregistered and healthy ones still receive."""
    broken, healthy = BrokenChannel(), RecordingChannel()
    presence.register(bob.id, broken)
    presence.register(bob.id, healthy)

    message = await router.send(alice.id, bob.id, "still here")

    assert presence.channels_of(bob.id) == {healthy}
    assert [p["id"] for p in healthy.payloads()] == [message.id]
    assert router.db.get(Message, message.id) is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "    "])
async def test_blank_message_rejected(router, alice, bob, text) -> None:
    with pytest.raises(ValidationError):
        await router.send(alice.id, bob.id, text)
    assert router.history(alice.id, bob.id) == []


@pytest.mark.asyncio
async def test_unknown_recipient(router, alice) -> None:
    with pytest.raises(NotFound):
        await router.send(alice.id, 555_555, "hello?")


@pytest.mark.asyncio
async def test_send_notifies_recipient_once(router, alice, bob) -> None:
    await router.send(alice.id, bob.id, "hey")

    [notification] = _notifications(router.db)
    assert notification.type is NotificationType.MESSAGE
    assert notification.user_id == bob.id
    assert notification.from_user_id == alice.id
    assert notification.related_post_id is None


@pytest.mark.asyncio
@pytest.mark.usefixtures("failing_notification_writes")
async def test_send_survives_notification_failure(router, presence, alice, bob) -> None:
    """The message is stored and delivered even if its notification fails."""
    channel = RecordingChannel()
    presence.register(bob.id, channel)

    message = await router.send(alice.id, bob.id, "important")

    assert len(channel.payloads()) == 1
    assert [m.id for m in router.history(alice.id, bob.id)] == [message.id]
    assert _notifications(router.db) == []


@pytest.mark.asyncio
async def test_delete_by_sender(router, alice, bob) -> None:
    message = await router.send(alice.id, bob.id, "oops")

    router.delete(message.id, alice.id)

    assert router.history(alice.id, bob.id) == []


@pytest.mark.asyncio
async def test_delete_by_recipient_forbidden(router, alice, bob) -> None:
    """Only the sender may delete a message."""
    message = await router.send(alice.id, bob.id, "mine")

    with pytest.raises(Forbidden):
        router.delete(message.id, bob.id)
    assert len(router.history(alice.id, bob.id)) == 1


def test_delete_missing_message(router, alice) -> None:
    with pytest.raises(NotFound):
        router.delete(404_404, alice.id)


@pytest.mark.asyncio
async def test_conversations_most_recent_first(router, alice, bob, carol, make_user) -> None:
    """Counterparts appear once each, ordered by the latest exchange."""
    dave = make_user("dave")
    await router.send(alice.id, bob.id, "1")
    await router.send(carol.id, alice.id, "2")
    await router.send(alice.id, alice.id, "note to self")
    await router.send(bob.id, carol.id, "not alice's")

    assert [u.username for u in router.conversations(alice.id)] == ["carol", "bob"]
    assert router.conversations(dave.id) == []

    await router.send(bob.id, alice.id, "3")
    assert [u.username for u in router.conversations(alice.id)] == ["bob", "carol"]


@pytest.mark.asyncio
async def test_failed_lookup_is_storage_failure(router, db_session, presence, alice, bob, monkeypatch) -> None:
    """A database error while loading the participants becomes StorageFailure."""
    channel = RecordingChannel()
    presence.register(bob.id, channel)

    def _locked(*args, **kwargs):
        raise OperationalError("SELECT user_account", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "get", _locked)

    with pytest.raises(StorageFailure):
        await router.send(alice.id, bob.id, "hello?")

    monkeypatch.undo()
    assert router.history(alice.id, bob.id) == []
    assert channel.events == []
