#!/usr/bin/env python3
"""
Matching Models - Data structures shared by every matching tier.

Inputs (Job, UserPreferences) are read-only records produced by the
collection and signup collaborators. Outputs (MatchScore, MatchResult)
are created fresh per (job, user) pair per run and never mutated.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple, FrozenSet

from core.utils import JobFingerprinter, split_list, parse_timestamp


class FreshnessTier(Enum):
    ULTRA_FRESH = "ultra_fresh"
    FRESH = "fresh"
    STALE = "stale"

    @classmethod
    def parse(cls, value: Any) -> "FreshnessTier":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower().replace("-", "_")
        for tier in cls:
            if tier.value == text:
                return tier
        return cls.STALE


class ExperienceTier(Enum):
    ENTRY = "entry"
    INTERNSHIP = "internship"
    GRADUATE = "graduate"
    JUNIOR = "junior"

    @classmethod
    def parse(cls, value: Any) -> "ExperienceTier":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for tier in cls:
            if tier.value in text:
                return tier
        return cls.ENTRY


class SubscriptionTier(Enum):
    FREE = "free"
    PREMIUM = "premium"


class Provenance(Enum):
    """Which tier produced a match."""
    AI = "ai"
    FALLBACK = "fallback"
    EMERGENCY = "emergency"


class QualityTier(Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


@dataclass(frozen=True)
class Job:
    """A job listing as produced by the collection subsystem."""
    id: str
    title: str
    company: str = ""
    location: str = ""
    tags: FrozenSet[str] = frozenset()
    freshness_tier: FreshnessTier = FreshnessTier.STALE
    posted_at: Optional[datetime] = None
    description: str = ""
    job_url: str = ""
    work_environment: str = ""
    language_requirements: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        """Build a Job from a loosely typed record.

        Tags may be a list or a comma separated `categories` string.
        Missing fields degrade to empty values.
        """
        title = str(data.get('title') or "").strip()
        company = str(data.get('company') or "").strip()
        location = JobFingerprinter.normalize_location(data.get('location')) if data.get('location') else ""
        job_id = data.get('id') or data.get('job_hash') or JobFingerprinter.calculate(company, title, location)
        raw_tags = data.get('tags')
        if raw_tags is None:
            raw_tags = data.get('categories')
        return cls(
            id=str(job_id),
            title=title,
            company=company,
            location=location,
            tags=frozenset(t.lower() for t in split_list(raw_tags)),
            freshness_tier=FreshnessTier.parse(data.get('freshness_tier')),
            posted_at=parse_timestamp(data.get('posted_at') or data.get('created_at')),
            description=str(data.get('description') or ""),
            job_url=str(data.get('job_url') or ""),
            work_environment=str(data.get('work_environment') or ""),
            language_requirements=str(data.get('language_requirements') or ""),
        )

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def tags_with_prefix(self, prefix: str) -> List[str]:
        """Values of `prefix:value` tags, e.g. tags_with_prefix('loc') -> ['london']."""
        marker = f"{prefix}:"
        return sorted(t[len(marker):] for t in self.tags if t.startswith(marker))


@dataclass(frozen=True)
class UserPreferences:
    """One candidate's matching preferences, keyed by email."""
    email: str
    target_cities: Tuple[str, ...] = ()
    languages: FrozenSet[str] = frozenset()
    company_types: FrozenSet[str] = frozenset()
    roles: FrozenSet[str] = frozenset()
    career_path: str = ""
    experience_tier: ExperienceTier = ExperienceTier.ENTRY
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    full_name: str = ""
    visa_status: str = ""
    work_environment: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPreferences":
        """Build preferences from a signup record (lists or comma separated strings)."""
        cities: List[str] = []
        for city in split_list(data.get('target_cities')):
            if city not in cities:
                cities.append(city)
        tier = str(data.get('subscription_tier') or "free").strip().lower()
        return cls(
            email=str(data.get('email') or "").strip(),
            target_cities=tuple(cities),
            languages=frozenset(split_list(data.get('languages') or data.get('languages_spoken'))),
            company_types=frozenset(split_list(data.get('company_types'))),
            roles=frozenset(split_list(data.get('roles') or data.get('roles_selected'))),
            career_path=str(data.get('career_path') or "").strip(),
            experience_tier=ExperienceTier.parse(data.get('experience_tier') or data.get('entry_level_preference')),
            subscription_tier=SubscriptionTier.PREMIUM if tier == "premium" else SubscriptionTier.FREE,
            full_name=str(data.get('full_name') or ""),
            visa_status=str(data.get('visa_status') or ""),
            work_environment=str(data.get('work_environment') or ""),
        )


@dataclass(frozen=True)
class MatchScore:
    """Component scores (0-100 each) and their weighted overall."""
    eligibility: float
    career_path: float
    location: float
    freshness: float
    overall: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            'eligibility': self.eligibility,
            'career_path': self.career_path,
            'location': self.location,
            'freshness': self.freshness,
            'overall': self.overall,
        }


@dataclass(frozen=True)
class Explanation:
    reason: str
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Evaluation:
    """Result of gating and scoring a single job for a user."""
    eligible: bool
    score: Optional[MatchScore] = None
    confidence: Optional[float] = None
    explanation: Optional[Explanation] = None


@dataclass(frozen=True)
class RankedJob:
    job: Job
    score: MatchScore


@dataclass(frozen=True)
class MatchResult:
    """A single recommendation, whichever tier produced it.

    `match_score` is the final 0-100 score for this tier: the AI score for
    provenance AI, `score.overall` for the rule-based tiers.
    """
    job: Job
    score: MatchScore
    match_score: int
    confidence: float
    reason: str
    quality: QualityTier
    provenance: Provenance
    tags: Tuple[str, ...] = ()
    session_id: Optional[str] = None
    batch_id: Optional[str] = None
    cache_hit: bool = False

    def to_record(self) -> Dict[str, Any]:
        """Flat record for the persistence/audit collaborator."""
        return {
            'job_hash': self.job.id,
            'match_score': self.match_score,
            'confidence_score': round(self.confidence, 4),
            'match_reason': self.reason,
            'match_quality': self.quality.value,
            'match_tags': ",".join(self.tags),
            'match_algorithm': self.provenance.value,
            'session_id': self.session_id,
            'batch_id': self.batch_id,
            'cache_hit': self.cache_hit,
        }


@dataclass
class UserMatchResult:
    """Outcome of the pipeline for one user."""
    user: str
    matches: List[MatchResult] = field(default_factory=list)
    ai_success: bool = False
    fallback_used: bool = False
    provenance: Optional[Provenance] = None
    errors: List[str] = field(default_factory=list)
    processing_time_ms: float = 0.0
    cache_hit: bool = False
    session_id: Optional[str] = None

    @property
    def match_count(self) -> int:
        return len(self.matches)


@dataclass
class SessionSummary:
    """Per-session counters for operational dashboards."""
    session_id: str
    users_processed: int = 0
    ai_successes: int = 0
    fallback_count: int = 0
    emergency_count: int = 0
    failures: int = 0
    cancelled: int = 0
    cache_hits: int = 0
    total_matches: int = 0
    processing_time_ms: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'users_processed': self.users_processed,
            'ai_successes': self.ai_successes,
            'fallback_count': self.fallback_count,
            'emergency_count': self.emergency_count,
            'failures': self.failures,
            'cancelled': self.cancelled,
            'cache_hits': self.cache_hits,
            'total_matches': self.total_matches,
            'processing_time_ms': round(self.processing_time_ms, 2),
        }


@dataclass
class BatchMatchResult:
    matches: Dict[str, List[MatchResult]] = field(default_factory=dict)
    results: Dict[str, UserMatchResult] = field(default_factory=dict)
    summary: Optional[SessionSummary] = None
