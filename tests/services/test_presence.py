# tests/services/test_presence.py
"""Tests for the presence registry."""

from concurrent.futures import ThreadPoolExecutor

from huddle.services.presence import PresenceRegistry, get_presence_registry
from tests.conftest import RecordingChannel


def test_register_and_unregister() -> None:
    registry = PresenceRegistry()
    channel = RecordingChannel()

    registry.register(1, channel)
    assert registry.channels_of(1) == {channel}
    assert registry.is_online(1)

    registry.unregister(1, channel)
    assert registry.channels_of(1) == frozenset()
    assert not registry.is_online(1)
    assert registry.online_users() == set()


def test_register_is_idempotent() -> None:
    """Registering the same channel twice keeps one entry."""
    registry = PresenceRegistry()
    channel = RecordingChannel()

    registry.register(1, channel)
    registry.register(1, channel)

    assert len(registry.channels_of(1)) == 1


def test_unregister_unknown_channel_is_noop() -> None:
    registry = PresenceRegistry()
    registry.register(1, RecordingChannel("kept"))

    registry.unregister(1, RecordingChannel("stranger"))
    registry.unregister(2, RecordingChannel("nobody"))

    assert len(registry.channels_of(1)) == 1


def test_multiple_devices_per_user() -> None:
    """A user stays online until the last of their channels leaves."""
    registry = PresenceRegistry()
    phone, laptop = RecordingChannel("phone"), RecordingChannel("laptop")

    registry.register(7, phone)
    registry.register(7, laptop)
    registry.unregister(7, phone)

    assert registry.channels_of(7) == {laptop}
    assert registry.online_users() == {7}


def test_unregister_channel_reports_owner() -> None:
    registry = PresenceRegistry()
    channel = RecordingChannel()
    registry.register(3, channel)

    assert registry.unregister_channel(channel) == 3
    assert registry.unregister_channel(channel) is None
    assert not registry.is_online(3)


def test_rejoining_as_another_user_moves_channel() -> None:
    """A channel belongs to a single user at a time."""
    registry = PresenceRegistry()
    channel = RecordingChannel()

    registry.register(1, channel)
    registry.register(2, channel)

    assert registry.channels_of(1) == frozenset()
    assert registry.channels_of(2) == {channel}


def test_snapshot_is_detached() -> None:
    """Mutating the registry does not change a snapshot already taken."""
    registry = PresenceRegistry()
    channel = RecordingChannel()
    registry.register(1, channel)

    snapshot = registry.channels_of(1)
    registry.clear()

    assert snapshot == {channel}
    assert registry.channels_of(1) == frozenset()


def test_process_registry_is_shared(presence) -> None:
    assert get_presence_registry() is presence


def test_concurrent_registration_stays_consistent() -> None:
    """Threads churning their own channels never corrupt each other's sets."""
    registry = PresenceRegistry()

    def _churn(user_id: int) -> list[RecordingChannel]:
        channels = [RecordingChannel(f"{user_id}-{n}") for n in range(200)]
        for channel in channels:
            registry.register(user_id, channel)
        for channel in channels[::2]:
            assert registry.unregister_channel(channel) == user_id
        return channels[1::2]

    user_ids = list(range(1, 9))
    with ThreadPoolExecutor(max_workers=len(user_ids)) as pool:
        kept = dict(zip(user_ids, pool.map(_churn, user_ids)))

    for user_id, channels in kept.items():
        assert registry.channels_of(user_id) == set(channels)
    assert registry.online_users() == set(user_ids)


def test_concurrent_moves_leave_one_owner() -> None:
    """A channel claimed by several users at once ends up with exactly one."""
    registry = PresenceRegistry()
    channel = RecordingChannel("contested")

    def _claim(user_id: int) -> None:
        for _ in range(500):
            registry.register(user_id, channel)

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(_claim, range(1, 5)))

    owners = [user_id for user_id in range(1, 5) if channel in registry.channels_of(user_id)]
    assert len(owners) == 1
    assert registry.unregister_channel(channel) == owners[0]
    assert registry.online_users() == set()
