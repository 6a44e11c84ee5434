"""Tests for kya.audit — memory and SQLite audit sinks."""

from datetime import timedelta

import pytest

from kya.audit import (
    DuplicateCommitment, MemoryAuditSink, NullAuditSink, SQLiteAuditSink, open_sink,
)
from kya.commitment import issue_commitment

SECRET = "test-secret"


@pytest.fixture(params=["memory", "sqlite"])
def sink(request, tmp_path):
    if request.param == "memory":
        s = MemoryAuditSink()
    else:
        s = SQLiteAuditSink(str(tmp_path / "audit.db"))
    yield s
    s.close()


def _issue(agent, now, minutes=0):
    return issue_commitment(agent, SECRET, now=now + timedelta(minutes=minutes))


def test_record_and_get(sink, gold_agent, fixed_now):
    c = _issue(gold_agent, fixed_now)
    sink.record(c)
    assert sink.get(c.content_hash) == c
    assert len(sink) == 1


def test_get_unknown(sink):
    assert sink.get("0" * 64) is None


def test_duplicate(sink, gold_agent, fixed_now):
    c = _issue(gold_agent, fixed_now)
    sink.record(c)
    with pytest.raises(DuplicateCommitment):
        sink.record(c)
    assert len(sink) == 1


def test_history_newest_first(sink, gold_agent, platinum_agent, fixed_now):
    first = _issue(gold_agent, fixed_now)
    second = _issue(gold_agent, fixed_now, minutes=5)
    other = _issue(platinum_agent, fixed_now)
    for c in (first, other, second):
        sink.record(c)
    assert sink.history("a1") == [second, first]
    assert sink.history("agent-42") == [other]
    assert sink.history("nobody") == []


def test_history_limit(sink, gold_agent, fixed_now):
    for i in range(5):
        sink.record(_issue(gold_agent, fixed_now, minutes=i))
    assert len(sink.history("a1", limit=2)) == 2


def test_sqlite_persists(tmp_path, gold_agent, fixed_now):
    path = str(tmp_path / "audit.db")
    c = _issue(gold_agent, fixed_now)
    s1 = SQLiteAuditSink(path)
    s1.record(c)
    s1.close()

    s2 = SQLiteAuditSink(path)
    try:
        assert s2.get(c.content_hash) == c
    finally:
        s2.close()


def test_sqlite_in_memory(gold_agent, fixed_now):
    s = SQLiteAuditSink(":memory:")
    c = _issue(gold_agent, fixed_now)
    s.record(c)
    assert s.history("a1") == [c]
    s.close()


def test_null_sink(gold_agent, fixed_now):
    s = NullAuditSink()
    c = _issue(gold_agent, fixed_now)
    s.record(c)
    s.record(c)
    assert s.get(c.content_hash) is None
    assert s.history("a1") == []


def test_open_sink(tmp_path):
    assert isinstance(open_sink(None), MemoryAuditSink)
    s = open_sink(str(tmp_path / "x.db"))
    assert isinstance(s, SQLiteAuditSink)
    s.close()
