#!/usr/bin/env python3
"""
Fallback Matching Service - deterministic rule-based tiers.

Two severity tiers, both I/O-free:
- robust: score every job, keep those above the cutoff, top N
- emergency: most recently posted jobs with a fixed low confidence

Neither tier invents matches for an empty candidate list; synthesising a
last-resort match is the orchestrator's job.
"""
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import logging

from core.config_loader import FallbackConfig
from core.errors import FallbackError
from core.models import Job, UserPreferences, MatchResult, Provenance
from core.scorer import ScoringService, passes_gate

logger = logging.getLogger(__name__)

EMERGENCY_REASON = "Recent opportunity"
EMERGENCY_TAGS = ("recent-opportunity",)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _posted_key(job: Job) -> datetime:
    # naive timestamps are taken as UTC
    posted = getattr(job, 'posted_at', None)
    if posted is None:
        return _OLDEST
    if posted.tzinfo is None:
        return posted.replace(tzinfo=timezone.utc)
    return posted


def _by_recency(jobs: Sequence[Job]) -> List[Job]:
    """Newest first; jobs without a timestamp go last; ties keep input order."""
    return sorted(jobs, key=_posted_key, reverse=True)


class FallbackMatchingService:
    """
    Rule-based ranking used when the AI tier is unavailable.
    """

    def __init__(self, scoring: ScoringService, config: Optional[FallbackConfig] = None):
        self.scoring = scoring
        self.config = config or FallbackConfig()

    def robust(
        self,
        jobs: Sequence[Job],
        user: UserPreferences,
        session_id: Optional[str] = None,
        batch_id: Optional[str] = None
    ) -> List[MatchResult]:
        """Top scoring eligible jobs above the minimum score cutoff.

        Returns an empty list when nothing qualifies. Raises FallbackError
        if the jobs cannot be scored at all.
        """
        try:
            ranked = [
                r for r in self.scoring.rank_for_user(jobs, user)
                if r.score.overall >= self.config.min_score
            ]
        except Exception as e:
            raise FallbackError(f"Robust tier could not rank jobs for {user.email}: {e}") from e
        selected = ranked[:self.config.max_matches]

        results = [
            self.scoring.build_result(
                r.job, user, Provenance.FALLBACK,
                session_id=session_id, batch_id=batch_id
            )
            for r in selected
        ]
        logger.debug(
            f"Robust fallback for {user.email}: {len(ranked)} above cutoff "
            f"{self.config.min_score}, returning {len(results)}"
        )
        return results

    def emergency(
        self,
        jobs: Sequence[Job],
        user: UserPreferences,
        session_id: Optional[str] = None,
        batch_id: Optional[str] = None
    ) -> List[MatchResult]:
        """Most recent opportunities with the lowest acceptable confidence.

        Eligible (gated) jobs are preferred; if none pass the gate, the single
        most recently posted job overall is used.
        """
        if not jobs or not self.config.enable_emergency_fallback:
            return []

        eligible = [j for j in jobs if passes_gate(j)]
        if eligible:
            selected = _by_recency(eligible)[:self.config.max_emergency_matches]
        else:
            selected = _by_recency(jobs)[:1]

        floor = self.scoring.config.confidence_floor
        results = [
            self.scoring.build_result(
                job, user, Provenance.EMERGENCY,
                reason=EMERGENCY_REASON,
                tags=EMERGENCY_TAGS,
                confidence=floor,
                session_id=session_id,
                batch_id=batch_id
            )
            for job in selected
        ]
        logger.info(f"Emergency fallback for {user.email}: {len(results)} recent opportunities")
        return results
