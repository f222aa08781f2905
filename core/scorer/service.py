#!/usr/bin/env python3
"""
Scoring Service - rule-based scoring of a job for a user.

Computes per-component scores and their weighted overall:
- Eligibility: hard early-career gate (100 or 0)
- Career path: exact category match or partial credit
- Location: exact target-city match or partial credit
- Freshness: explicit policy (see freshness.py)

Also provides confidence, explanations, gating and per-user ranking.
Pure: no I/O, no retries. Malformed jobs degrade scores instead of raising.
"""

from datetime import datetime
from typing import Callable, FrozenSet, Iterable, List, Optional
import logging

from core.config_loader import ScoringConfig
from core.models import (
    Job, UserPreferences, MatchScore, MatchResult, Explanation, Evaluation,
    RankedJob, Provenance
)
from core.scorer import explainability
from core.scorer.categories import categories_for_career_path
from core.scorer.freshness import freshness_score
from core.scorer.quality import quality_tier, categorize_matches, CategorizedMatches
from core.utils import slugify

logger = logging.getLogger(__name__)

EARLY_CAREER_TAG = "early-career"
UNCERTAIN_ELIGIBILITY_TAG = "eligibility:uncertain"
UNKNOWN_CAREER_TAG = "career:unknown"
UNKNOWN_LOCATION_TAG = "loc:unknown"


def _tags(job: Job) -> FrozenSet[str]:
    return frozenset(getattr(job, 'tags', None) or ())


def passes_gate(job: Job) -> bool:
    """A job needs a title and at least one classification tag to be matched."""
    return bool(getattr(job, 'title', None)) and len(_tags(job)) > 0


class ScoringService:
    """
    Service for rule-based scoring of (job, user) pairs.

    Every tier builds on this service: the fallback tiers rank with it and
    the AI tier uses it for component scores and confidence.
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or ScoringConfig()
        self.clock = clock

    def score(self, job: Job, user: UserPreferences) -> MatchScore:
        """Calculate component scores and the weighted overall for one pair."""
        tags = _tags(job)
        partial = self.config.partial_credit

        eligibility = 100.0 if EARLY_CAREER_TAG in tags else 0.0

        accepted_paths = categories_for_career_path(getattr(user, 'career_path', "") or "")
        job_paths = {t.split(":", 1)[1] for t in tags if t.startswith("career:")}
        career_path = 100.0 if accepted_paths & job_paths else partial.career_path

        target_cities = {slugify(c) for c in (getattr(user, 'target_cities', None) or ())}
        target_cities.discard("")
        job_locations = {t.split(":", 1)[1] for t in tags if t.startswith("loc:")}
        location = 100.0 if target_cities & job_locations else partial.location

        now = self.clock() if self.clock else None
        freshness = freshness_score(job, self.config.freshness, now=now)

        w = self.config.weights
        weighted = (
            eligibility * w.eligibility
            + career_path * w.career_path
            + location * w.location
            + freshness * w.freshness
        )
        overall = int(round(weighted / w.total))

        return MatchScore(
            eligibility=eligibility,
            career_path=career_path,
            location=location,
            freshness=freshness,
            overall=overall
        )

    def confidence(self, job: Job, user: UserPreferences) -> float:
        """Confidence in the classification behind a score, floored at the configured minimum."""
        tags = _tags(job)
        conf_config = self.config.confidence

        confidence = 1.0
        if UNCERTAIN_ELIGIBILITY_TAG in tags:
            confidence -= conf_config.uncertain_penalty
        if UNKNOWN_CAREER_TAG in tags or UNKNOWN_LOCATION_TAG in tags:
            confidence -= conf_config.unknown_penalty

        return max(confidence, self.config.confidence_floor)

    def explain(self, job: Job, score: MatchScore, user: UserPreferences) -> Explanation:
        return explainability.build_explanation(job, score, self.config.thresholds)

    def evaluate(self, job: Job, user: UserPreferences) -> Evaluation:
        """Gate first, then score, confidence and explanation for eligible jobs."""
        if not passes_gate(job):
            return Evaluation(eligible=False)

        score = self.score(job, user)
        return Evaluation(
            eligible=True,
            score=score,
            confidence=self.confidence(job, user),
            explanation=self.explain(job, score, user)
        )

    def rank_for_user(self, jobs: Iterable[Job], user: UserPreferences) -> List[RankedJob]:
        """Score gated jobs and sort by overall score, highest first.

        Ties keep their input order.
        """
        ranked = [
            RankedJob(job=job, score=self.score(job, user))
            for job in jobs
            if passes_gate(job)
        ]
        ranked.sort(key=lambda r: r.score.overall, reverse=True)
        return ranked

    def categorize(self, matches: Iterable[MatchResult]) -> CategorizedMatches:
        """Partition matches at the configured confidence cut."""
        return categorize_matches(matches, self.config.thresholds.categorize)

    def build_result(
        self,
        job: Job,
        user: UserPreferences,
        provenance: Provenance,
        match_score: Optional[int] = None,
        reason: Optional[str] = None,
        confidence: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
        session_id: Optional[str] = None,
        batch_id: Optional[str] = None,
        cache_hit: bool = False
    ) -> MatchResult:
        """Assemble a MatchResult, filling anything not supplied from this service.

        Confidence is never allowed below the configured floor.
        """
        score = self.score(job, user)
        final_score = score.overall if match_score is None else int(match_score)
        if reason is None or tags is None:
            explanation = self.explain(job, score, user)
            reason = explanation.reason if reason is None else reason
            tags = explanation.tags if tags is None else tags
        if confidence is None:
            confidence = self.confidence(job, user)
        confidence = max(confidence, self.config.confidence_floor)

        return MatchResult(
            job=job,
            score=score,
            match_score=final_score,
            confidence=confidence,
            reason=reason,
            quality=quality_tier(final_score, self.config.thresholds),
            provenance=provenance,
            tags=tuple(tags),
            session_id=session_id,
            batch_id=batch_id,
            cache_hit=cache_hit
        )
