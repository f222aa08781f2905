import logging
from typing import Dict, List, Optional

from sqlalchemy import select, func

from core.models import UserMatchResult, SessionSummary
from database.models import MatchLog, MatchSession
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class MatchLogRepository(BaseRepository):
    def add_user_outcome(self, result: UserMatchResult) -> MatchLog:
        log = MatchLog(
            session_id=result.session_id,
            user_email=result.user,
            provenance=result.provenance.value if result.provenance else None,
            ai_success=result.ai_success,
            fallback_used=result.fallback_used,
            cache_hit=result.cache_hit,
            match_count=result.match_count,
            processing_time_ms=round(result.processing_time_ms, 2),
            errors=list(result.errors),
            matches=[m.to_record() for m in result.matches],
        )
        self.db.add(log)
        return log

    def upsert_session(self, summary: SessionSummary) -> MatchSession:
        data = summary.as_dict()
        session_id = data.pop('session_id')
        row = self.db.get(MatchSession, session_id)
        if row is None:
            row = MatchSession(id=session_id)
            self.db.add(row)
        for key, value in data.items():
            setattr(row, key, value)
        return row

    def get_session(self, session_id: str) -> Optional[MatchSession]:
        return self.db.get(MatchSession, session_id)

    def get_logs_for_session(self, session_id: str) -> List[MatchLog]:
        stmt = select(MatchLog).where(
            MatchLog.session_id == session_id
        ).order_by(MatchLog.id)
        return self.db.execute(stmt).scalars().all()

    def get_logs_for_user(self, user_email: str, limit: int = 20) -> List[MatchLog]:
        stmt = select(MatchLog).where(
            MatchLog.user_email == user_email
        ).order_by(MatchLog.created_at.desc(), MatchLog.id.desc()).limit(limit)
        return self.db.execute(stmt).scalars().all()

    def get_provenance_counts(self, session_id: str) -> Dict[str, int]:
        stmt = select(MatchLog.provenance, func.count(MatchLog.id)).where(
            MatchLog.session_id == session_id
        ).group_by(MatchLog.provenance)
        return {
            (provenance or 'none'): count
            for provenance, count in self.db.execute(stmt).all()
        }
