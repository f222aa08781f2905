#!/usr/bin/env python3
"""
Explainability - human readable reasons and tags for a scored match.
"""
from typing import List

from core.config_loader import ThresholdConfig
from core.models import Job, MatchScore, Explanation, FreshnessTier
from core.scorer.quality import quality_tier

GENERIC_REASON = "Potential match"


def build_explanation(job: Job, score: MatchScore, thresholds: ThresholdConfig) -> Explanation:
    """
    Describe which components of the score were satisfied.

    Reason parts appear in a fixed order so explanations are reproducible:
    eligibility, career path, location, recency.
    """
    reasons: List[str] = []
    tags: List[str] = [f"{quality_tier(score.overall, thresholds).value}-match"]

    if score.eligibility >= 100:
        reasons.append("Perfect for early-career professionals")
        tags.append("early-career")
    if score.career_path >= 100:
        reasons.append("Exact career path match")
        tags.append("career-match")
    if score.location >= 100:
        reasons.append("Perfect location match")
        tags.append("location-match")
    if job.freshness_tier in (FreshnessTier.ULTRA_FRESH, FreshnessTier.FRESH):
        reasons.append("Recently posted")
        tags.append("recent")

    reason = "; ".join(reasons) if reasons else GENERIC_REASON
    return Explanation(reason=reason, tags=tuple(tags))
