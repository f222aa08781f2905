import logging

from core.audit import LoggingAuditSink, InMemoryAuditSink
from core.models import UserMatchResult, SessionSummary, Provenance


def test_in_memory_sink_collects_and_clears():
    sink = InMemoryAuditSink()
    outcome = UserMatchResult(user="ada@example.com", provenance=Provenance.AI)
    summary = SessionSummary(session_id="s1", users_processed=1)

    sink.record_user_outcome(outcome)
    sink.record_session(summary)

    assert sink.outcomes == [outcome]
    assert sink.sessions == [summary]
    sink.clear()
    assert sink.outcomes == [] and sink.sessions == []


def test_logging_sink_writes_one_line_per_user(caplog):
    sink = LoggingAuditSink()
    with caplog.at_level(logging.INFO, logger="core.audit"):
        sink.record_user_outcome(UserMatchResult(user="ada@example.com"))
        sink.record_session(SessionSummary(session_id="s1", cancelled=2))

    messages = [r.getMessage() for r in caplog.records]
    assert any("ada@example.com: 0 matches via none" in m for m in messages)
    assert any("Session s1" in m and "2 cancelled" in m for m in messages)
