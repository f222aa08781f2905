import yaml
import os
from typing import Optional, Literal
from pydantic import BaseModel, Field, model_validator


class ScoringWeights(BaseModel):
    """Component weights for the overall match score.

    eligibility + career_path + location must sum to 100. Freshness is
    informational by default (weight 0); a non-zero freshness weight is
    normalised into the sum by the scorer.
    """
    eligibility: float = 40.0
    career_path: float = 35.0
    location: float = 25.0
    freshness: float = 0.0

    @model_validator(mode="after")
    def _check_sum(self) -> "ScoringWeights":
        total = self.eligibility + self.career_path + self.location
        if abs(total - 100.0) > 1e-9:
            raise ValueError(
                f"eligibility + career_path + location weights must sum to 100, got {total}"
            )
        if self.freshness < 0:
            raise ValueError("freshness weight cannot be negative")
        return self

    @property
    def total(self) -> float:
        return self.eligibility + self.career_path + self.location + self.freshness


class PartialCreditConfig(BaseModel):
    """Scores given when a component is not an exact match."""
    career_path: float = 70.0
    location: float = 50.0


class ConfidenceConfig(BaseModel):
    uncertain_penalty: float = 0.1  # eligibility:uncertain
    unknown_penalty: float = 0.15  # career:unknown / loc:unknown
    floor: float = 0.3


class ThresholdConfig(BaseModel):
    """Score thresholds expressed as fractions of 100."""
    excellent: float = 0.8
    good: float = 0.7
    fair: float = 0.5
    minimum: float = 0.5

    # confidence cut between "confident" and "promising" matches
    categorize: float = 0.8

    @model_validator(mode="after")
    def _check_order(self) -> "ThresholdConfig":
        if not (self.excellent > self.good > self.fair >= self.minimum >= 0.0):
            raise ValueError("thresholds must satisfy excellent > good > fair >= minimum >= 0")
        return self


class FreshnessConfig(BaseModel):
    """Freshness scoring policy.

    constant: every job gets `baseline` (historical behaviour)
    tier:     score from the job's freshness tier
    decay:    linear decay from 100 by `decay_per_day` since posting
    """
    policy: Literal["constant", "tier", "decay"] = "constant"
    baseline: float = 100.0
    ultra_fresh: float = 100.0
    fresh: float = 80.0
    stale: float = 40.0
    decay_per_day: float = 5.0
    decay_floor: float = 0.0


class ScoringConfig(BaseModel):
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    partial_credit: PartialCreditConfig = Field(default_factory=PartialCreditConfig)
    confidence: ConfidenceConfig = Field(default_factory=ConfidenceConfig)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    freshness: FreshnessConfig = Field(default_factory=FreshnessConfig)

    @property
    def confidence_floor(self) -> float:
        """Effective floor: the configured floor or the minimum threshold, whichever is higher."""
        return max(self.confidence.floor, self.thresholds.minimum)

    @property
    def minimum_score(self) -> float:
        """Minimum acceptable match score on the 0-100 scale."""
        return self.thresholds.minimum * 100.0


class FallbackConfig(BaseModel):
    max_matches: int = 5
    max_emergency_matches: int = 3
    min_score: float = 50.0  # 0-100 cutoff for the robust tier
    enable_emergency_fallback: bool = True


class AIConfig(BaseModel):
    enabled: bool = True
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    max_tokens: int = 2000
    temperature: float = 0.3
    timeout_seconds: float = 30.0
    max_matches: int = 5
    max_calls_per_run: Optional[int] = None  # None = no budget
    max_calls_per_user: Optional[int] = None  # per user, per run; None = no cap
    description_chars: int = 300  # description excerpt length in the prompt


class CacheConfig(BaseModel):
    ttl_seconds: int = 30 * 60
    max_size: int = 5000
    cleanup_interval_seconds: int = 5 * 60
    warm_entries: int = 2500
    redis_url: Optional[str] = None  # enables the Redis write-through tier
    redis_password: Optional[str] = None

    @model_validator(mode="after")
    def _check_sizes(self) -> "CacheConfig":
        if self.max_size <= 0:
            raise ValueError("cache max_size must be positive")
        if self.warm_entries > self.max_size:
            raise ValueError("cache warm_entries cannot exceed max_size")
        return self


class PerformanceConfig(BaseModel):
    batch_size: int = 50
    max_concurrent: int = 10
    retry_attempts: int = 3


class DatabaseConfig(BaseModel):
    url: Optional[str] = None  # audit log database; None disables SQL auditing


class MatchingConfig(BaseModel):
    """
    Top-level matching configuration.
    """
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)


class AppConfig(BaseModel):
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from root), try the repo root
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    data = {}
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

    matching = data.setdefault('matching', {}) or {}
    data['matching'] = matching

    # Allow env var overrides for the LLM endpoint
    env_api_key = os.environ.get("OPENAI_API_KEY")
    if env_api_key:
        matching.setdefault('ai', {})
        matching['ai']['api_key'] = env_api_key

    env_llm_base_url = os.environ.get("LLM_BASE_URL")
    if env_llm_base_url:
        matching.setdefault('ai', {})
        matching['ai']['base_url'] = env_llm_base_url

    # Allow env var override for Redis URL
    env_redis_url = os.environ.get("REDIS_URL")
    if env_redis_url:
        matching.setdefault('cache', {})
        matching['cache']['redis_url'] = env_redis_url

    # Allow env var override for DB URL
    env_db_url = os.environ.get("DATABASE_URL")
    if env_db_url:
        if 'database' not in data or data['database'] is None:
            data['database'] = {}
        data['database']['url'] = env_db_url

    return AppConfig(**data)
