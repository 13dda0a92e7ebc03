"""Tests for the connection registry."""
import random
import threading

import pytest

from sharehub.chat.errors import DuplicateConnection, UnknownConnection
from sharehub.chat.registry import DEFAULT_DISPLAY_NAME, ConnectionRegistry


@pytest.fixture
def notifications(registry):
    """Record every snapshot the registry publishes."""
    seen = []
    registry.add_listener(seen.append)
    return seen


def test_open_uses_default_name(registry):
    registry.open("a1")

    assert registry.snapshot() == {"a1": DEFAULT_DISPLAY_NAME}
    assert registry.exists("a1")
    assert registry.lookup("a1") == "Anonymous"


def test_set_name_overwrites(registry):
    registry.open("a1")
    registry.set_name("a1", "Alice")
    registry.set_name("a1", "Alicia")

    assert registry.lookup("a1") == "Alicia"


@pytest.mark.parametrize("blank", ["", "   ", "\t\n", None, 42, {"name": "x"}])
def test_blank_or_invalid_name_becomes_sentinel(registry, blank):
    registry.open("a1")
    registry.set_name("a1", "Alice")

    stored = registry.set_name("a1", blank)

    assert stored == DEFAULT_DISPLAY_NAME
    assert registry.lookup("a1") == DEFAULT_DISPLAY_NAME


def test_name_is_stripped_and_truncated():
    registry = ConnectionRegistry(max_name_length=5)
    registry.open("a1")

    assert registry.set_name("a1", "  Bob  ") == "Bob"
    assert registry.set_name("a1", "Bartholomew") == "Barth"


def test_custom_default_name():
    registry = ConnectionRegistry(default_name="Guest")
    registry.open("a1")

    assert registry.lookup("a1") == "Guest"
    assert registry.set_name("a1", " ") == "Guest"


def test_close_removes_record(registry):
    registry.open("a1")
    registry.open("b1")

    assert registry.close("a1") is True

    assert registry.snapshot() == {"b1": "Anonymous"}
    assert not registry.exists("a1")
    assert registry.lookup("a1") is None


def test_close_is_idempotent(registry, notifications):
    registry.open("a1")
    registry.close("a1")

    assert registry.close("a1") is False
    assert registry.close("never-opened") is False

    # One for open, one for the first close; the no-op closes publish nothing
    assert len(notifications) == 2


def test_duplicate_open_raises_and_keeps_record(registry, notifications):
    registry.open("a1")
    registry.set_name("a1", "Alice")

    with pytest.raises(DuplicateConnection) as exc_info:
        registry.open("a1")

    assert exc_info.value.connection_id == "a1"
    assert registry.lookup("a1") == "Alice"
    assert len(notifications) == 2


def test_set_name_on_unknown_connection(registry, notifications):
    with pytest.raises(UnknownConnection):
        registry.set_name("ghost", "Casper")

    assert registry.snapshot() == {}
    assert notifications == []


def test_snapshot_is_a_copy(registry):
    registry.open("a1")
    snapshot = registry.snapshot()

    registry.set_name("a1", "Alice")
    registry.open("b1")

    assert snapshot == {"a1": "Anonymous"}
    with pytest.raises(TypeError):
        snapshot["c1"] = "Mallory"


def test_each_mutation_notifies_once_after_commit(registry, notifications):
    registry.open("a1")
    registry.open("b1")
    registry.set_name("a1", "Alice")
    registry.close("b1")

    assert [dict(s) for s in notifications] == [
        {"a1": "Anonymous"},
        {"a1": "Anonymous", "b1": "Anonymous"},
        {"a1": "Alice", "b1": "Anonymous"},
        {"a1": "Alice"},
    ]


def test_failing_listener_does_not_undo_mutation(registry, notifications):
    def broken(snapshot):
        raise RuntimeError("boom")

    registry.add_listener(broken)
    registry.open("a1")

    assert registry.exists("a1")
    assert len(notifications) == 1


def test_presence_consistency_after_random_operations(registry):
    """Snapshot matches a model of open ids and their latest names."""
    rng = random.Random(1234)
    ids = [f"c{i}" for i in range(8)]
    expected = {}

    for _ in range(500):
        connection_id = rng.choice(ids)
        op = rng.choice(["open", "rename", "close"])
        if op == "open":
            if connection_id in expected:
                with pytest.raises(DuplicateConnection):
                    registry.open(connection_id)
            else:
                registry.open(connection_id)
                expected[connection_id] = "Anonymous"
        elif op == "rename":
            name = rng.choice(["Alice", "Bob", "", "  Carol "])
            if connection_id in expected:
                registry.set_name(connection_id, name)
                expected[connection_id] = name.strip() or "Anonymous"
            else:
                with pytest.raises(UnknownConnection):
                    registry.set_name(connection_id, name)
        else:
            assert registry.close(connection_id) is (connection_id in expected)
            expected.pop(connection_id, None)

        assert registry.snapshot() == expected


def test_concurrent_mutations_publish_in_commit_order(registry):
    """Under contention, each published snapshot differs from the previous
    one by exactly the mutation that produced it, and the final snapshot
    matches the registry."""
    published = []
    registry.add_listener(published.append)

    def worker(prefix):
        for i in range(200):
            connection_id = f"{prefix}-{i}"
            registry.open(connection_id)
            registry.set_name(connection_id, prefix)
            registry.close(connection_id)

    threads = [threading.Thread(target=worker, args=(f"t{n}",)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert registry.snapshot() == {}
    assert len(published) == 4 * 200 * 3

    previous = {}
    for snapshot in published:
        current = dict(snapshot)
        changed = set(previous.items()) ^ set(current.items())
        assert 1 <= len(changed) <= 2
        previous = current
    assert previous == {}
