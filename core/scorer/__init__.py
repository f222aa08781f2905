#!/usr/bin/env python3
"""
Scoring Module - rule-based scoring.

Public API:
- ScoringService: score, confidence, explain, evaluate, rank_for_user
- categorize_matches: confident/promising partition
- quality_tier: threshold table lookup

Split into focused modules:

- categories.py: career path form value -> job category mapping
- freshness.py: freshness policies
- explainability.py: reasons and tags
- quality.py: quality tiers and classification
- service.py: ScoringService
"""

from core.scorer.service import ScoringService, passes_gate
from core.scorer.quality import quality_tier, categorize_matches, CategorizedMatches

__all__ = [
    'ScoringService', 'passes_gate',
    'quality_tier', 'categorize_matches', 'CategorizedMatches'
]
