"""
Fingerprints for AI result reuse.

Users with the same coarse profile (target cities + career path) looking at
the same candidate job set get the same AI ranking within the cache TTL.
"""
import hashlib
from typing import Iterable

from core.models import Job, UserPreferences
from core.scorer.categories import normalize_career_path
from core.utils import slugify


def user_cluster_key(user: UserPreferences) -> str:
    """Coarse user signature: sorted target city slugs and normalised career path."""
    cities = sorted({slugify(c) for c in user.target_cities if slugify(c)})
    return f"{','.join(cities) or 'anywhere'}|{normalize_career_path(user.career_path)}"


def job_set_key(jobs: Iterable[Job]) -> str:
    """Order-independent signature of a candidate job set."""
    return ",".join(sorted(str(job.id) for job in jobs))


def ranking_fingerprint(jobs: Iterable[Job], user: UserPreferences) -> str:
    raw = f"{job_set_key(jobs)}#{user_cluster_key(user)}"
    return hashlib.sha256(raw.encode('utf-8')).hexdigest()
