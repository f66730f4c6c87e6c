"""Tests for the bounded event log."""
from engine.eventlog import EventLog
from engine.model import Event


def evt(i: int) -> Event:
    return Event("Test", 1, f"message {i}", {"i": i})


def test_recent_is_newest_first_and_bounded():
    log = EventLog(limit=3)
    log.append_many([evt(i) for i in range(5)])
    assert len(log) == 3
    assert log.messages() == ["message 4", "message 3", "message 2"]
    assert log.messages(limit=1) == ["message 4"]


def test_append_many_returns_absolute_offsets():
    log = EventLog(limit=3)
    assert log.append_many([evt(0), evt(1)]) == (0, 1)
    assert log.append_many([evt(2), evt(3)]) == (2, 3)


def test_since_streams_without_repeats():
    log = EventLog(limit=10)
    log.append_many([evt(i) for i in range(4)])
    chunk, nxt = log.since(0, limit=3)
    assert [e.data["i"] for e in chunk] == [0, 1, 2]
    chunk, nxt = log.since(nxt)
    assert [e.data["i"] for e in chunk] == [3]
    chunk, nxt2 = log.since(nxt)
    assert chunk == [] and nxt2 == nxt


def test_since_skips_events_that_fell_off():
    log = EventLog(limit=2)
    log.append_many([evt(i) for i in range(5)])
    chunk, nxt = log.since(0)
    assert [e.data["i"] for e in chunk] == [3, 4]
    assert nxt == 5


def test_clear():
    log = EventLog()
    log.append(evt(0))
    log.clear()
    assert len(log) == 0
    assert log.since(0) == ([], 0)
