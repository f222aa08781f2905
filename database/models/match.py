from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, JSON, Index

from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MatchSession(Base):
    """
    Per-session counters for operational dashboards.

    One row per orchestrator batch run; the primary key is the session id
    stamped on every match of that run.
    """
    __tablename__ = 'match_sessions'

    id = Column(String(64), primary_key=True)
    users_processed = Column(Integer, nullable=False, default=0)
    ai_successes = Column(Integer, nullable=False, default=0)
    fallback_count = Column(Integer, nullable=False, default=0)
    emergency_count = Column(Integer, nullable=False, default=0)
    failures = Column(Integer, nullable=False, default=0)
    cancelled = Column(Integer, nullable=False, default=0)
    cache_hits = Column(Integer, nullable=False, default=0)
    total_matches = Column(Integer, nullable=False, default=0)
    processing_time_ms = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class MatchLog(Base):
    """
    One user's outcome within a session.

    `matches` holds the flat MatchResult records (job hash, score, reason,
    quality tier, provenance) in rank order.
    """
    __tablename__ = 'match_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=True)
    user_email = Column(Text, nullable=False)

    provenance = Column(String(16), nullable=True)  # ai|fallback|emergency, None for zero matches
    ai_success = Column(Boolean, default=False)
    fallback_used = Column(Boolean, default=False)
    cache_hit = Column(Boolean, default=False)

    match_count = Column(Integer, default=0)
    processing_time_ms = Column(Float, default=0.0)
    errors = Column(JSON, default=list)
    matches = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index('idx_match_logs_session', 'session_id'),
        Index('idx_match_logs_user', 'user_email'),
        Index('idx_match_logs_provenance', 'provenance'),
    )
