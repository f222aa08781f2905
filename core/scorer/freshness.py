"""
Freshness policies.

The freshness component has historically been a constant baseline even
though jobs carry a freshness tier. The policy is explicit so the choice
is testable: `constant` keeps the historical behaviour, `tier` and `decay`
make freshness depend on the job.
"""
from datetime import datetime, timezone
from typing import Optional

from core.config_loader import FreshnessConfig
from core.models import Job, FreshnessTier


def freshness_score(job: Job, config: FreshnessConfig, now: Optional[datetime] = None) -> float:
    """Freshness component (0-100) for a job under the configured policy."""
    if config.policy == "tier":
        return {
            FreshnessTier.ULTRA_FRESH: config.ultra_fresh,
            FreshnessTier.FRESH: config.fresh,
            FreshnessTier.STALE: config.stale,
        }[FreshnessTier.parse(job.freshness_tier)]

    if config.policy == "decay":
        if job.posted_at is None:
            return config.decay_floor
        now = now or datetime.now(timezone.utc)
        posted = job.posted_at
        if posted.tzinfo is None:
            posted = posted.replace(tzinfo=timezone.utc)
        age_days = max(0.0, (now - posted).total_seconds() / 86400.0)
        return max(config.decay_floor, min(100.0, 100.0 - age_days * config.decay_per_day))

    return config.baseline
