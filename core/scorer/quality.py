"""
Quality tiers and confident/promising classification.
"""
from dataclasses import dataclass, field
from typing import List, Iterable

from core.config_loader import ThresholdConfig
from core.models import MatchResult, QualityTier


def quality_tier(match_score: float, thresholds: ThresholdConfig) -> QualityTier:
    """Map a 0-100 score onto the threshold table."""
    fraction = match_score / 100.0
    if fraction >= thresholds.excellent:
        return QualityTier.EXCELLENT
    if fraction >= thresholds.good:
        return QualityTier.GOOD
    if fraction >= thresholds.fair:
        return QualityTier.FAIR
    return QualityTier.POOR


@dataclass
class CategorizedMatches:
    confident: List[MatchResult] = field(default_factory=list)
    promising: List[MatchResult] = field(default_factory=list)


def categorize_matches(matches: Iterable[MatchResult], threshold: float = 0.8) -> CategorizedMatches:
    """Split matches into confident (confidence >= threshold) and promising, keeping order."""
    result = CategorizedMatches()
    for match in matches:
        if match.confidence >= threshold:
            result.confident.append(match)
        else:
            result.promising.append(match)
    return result
