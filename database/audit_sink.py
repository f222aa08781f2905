"""
SQL audit sink - persists user outcomes and session summaries.

Transient database errors are retried with tenacity; anything still failing
propagates to the orchestrator, which logs it and carries on.
"""
import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from tenacity import (
    retry,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception_type,
    before_sleep_log
)

from core.audit import MatchAuditSink
from core.models import UserMatchResult, SessionSummary
from database.uow import match_log_uow

logger = logging.getLogger(__name__)


class SqlAuditSink(MatchAuditSink):
    """Writes `match_logs` and `match_sessions` rows."""

    def __init__(
        self,
        session_factory: sessionmaker,
        retry_attempts: int = 3,
        retry_wait_seconds: float = 1.0
    ):
        self.session_factory = session_factory

        retrying = retry(
            stop=stop_after_attempt(max(1, retry_attempts)),
            wait=wait_fixed(retry_wait_seconds),
            retry=retry_if_exception_type(OperationalError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )
        self._write_outcome = retrying(self._write_outcome)
        self._write_session = retrying(self._write_session)

    def record_user_outcome(self, result: UserMatchResult) -> None:
        self._write_outcome(result)

    def record_session(self, summary: SessionSummary) -> None:
        self._write_session(summary)
        logger.info(f"Stored session summary {summary.session_id}")

    def _write_outcome(self, result: UserMatchResult) -> None:
        with match_log_uow(self.session_factory) as repo:
            repo.add_user_outcome(result)

    def _write_session(self, summary: SessionSummary) -> None:
        with match_log_uow(self.session_factory) as repo:
            repo.upsert_session(summary)
