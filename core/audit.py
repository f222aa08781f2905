"""
Match Audit Sinks - where per-user outcomes and session summaries go.

The orchestrator hands every finished user and every finished session to a
sink. Sinks must never influence matching results; the orchestrator logs
and drops any exception they raise.
"""
from abc import ABC, abstractmethod
from typing import List
import logging
import threading

from core.models import UserMatchResult, SessionSummary

logger = logging.getLogger(__name__)


class MatchAuditSink(ABC):
    """Destination for matching telemetry."""

    @abstractmethod
    def record_user_outcome(self, result: UserMatchResult) -> None:
        """Record one user's outcome (provenance, latency, cache hit, matches)."""
        pass

    @abstractmethod
    def record_session(self, summary: SessionSummary) -> None:
        """Record the counters of a finished session."""
        pass


class LoggingAuditSink(MatchAuditSink):
    """Default sink: one log line per user and per session."""

    def record_user_outcome(self, result: UserMatchResult) -> None:
        provenance = result.provenance.value if result.provenance else "none"
        logger.info(
            f"Matched {result.user}: {result.match_count} matches via {provenance} "
            f"in {result.processing_time_ms:.0f}ms (cache_hit={result.cache_hit})"
        )
        for error in result.errors:
            logger.debug(f"  {result.user}: {error}")

    def record_session(self, summary: SessionSummary) -> None:
        logger.info(
            f"Session {summary.session_id}: {summary.users_processed} users, "
            f"{summary.ai_successes} AI, {summary.fallback_count} fallback, "
            f"{summary.emergency_count} emergency, {summary.failures} failed, "
            f"{summary.cancelled} cancelled, {summary.total_matches} matches "
            f"in {summary.processing_time_ms:.0f}ms"
        )


class InMemoryAuditSink(MatchAuditSink):
    """Keeps everything in memory. Used by tests and diagnostics."""

    def __init__(self):
        self._lock = threading.Lock()
        self.outcomes: List[UserMatchResult] = []
        self.sessions: List[SessionSummary] = []

    def record_user_outcome(self, result: UserMatchResult) -> None:
        with self._lock:
            self.outcomes.append(result)

    def record_session(self, summary: SessionSummary) -> None:
        with self._lock:
            self.sessions.append(summary)

    def clear(self) -> None:
        with self._lock:
            self.outcomes.clear()
            self.sessions.clear()
