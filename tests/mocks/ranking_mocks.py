#!/usr/bin/env python3
"""
Test Mock Implementations - fake ranking providers and record builders.

These mocks provide deterministic behaviour for unit tests without
calling an external AI backend.
"""
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from core.llm.interfaces import RankingProvider
from core.models import Job, UserPreferences, FreshnessTier

FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def make_job(
    job_id: str,
    career: Optional[str] = "tech-transformation",
    city: Optional[str] = "london",
    days_old: Optional[float] = 1,
    early_career: bool = True,
    extra_tags: Sequence[str] = (),
    title: str = "Graduate Analyst",
    freshness_tier: FreshnessTier = FreshnessTier.FRESH
) -> Job:
    """Build a tagged job. Pass None to leave a tag (or the timestamp) out."""
    tags = set(extra_tags)
    if early_career:
        tags.add("early-career")
    if career:
        tags.add(f"career:{career}")
    if city:
        tags.add(f"loc:{city}")
    posted_at = FIXED_NOW - timedelta(days=days_old) if days_old is not None else None
    return Job(
        id=job_id,
        title=title,
        company=f"Company {job_id}",
        location=(city or "").title(),
        tags=frozenset(tags),
        freshness_tier=freshness_tier,
        posted_at=posted_at,
        description=f"Entry level role {job_id}",
    )


def make_user(
    email: str = "ada@example.com",
    cities: Sequence[str] = ("London",),
    career_path: str = "tech"
) -> UserPreferences:
    return UserPreferences(
        email=email,
        target_cities=tuple(cities),
        career_path=career_path,
        roles=frozenset({"Software Engineer"}),
        languages=frozenset({"English"}),
    )


class MockRankingProvider(RankingProvider):
    """
    Returns a fixed ranking (or raises a fixed error) and records every call.

    By default it ranks the supplied jobs in order with descending scores.
    """

    def __init__(
        self,
        response: Optional[List[Dict[str, Any]]] = None,
        error: Optional[Exception] = None,
        fail_for: Sequence[str] = (),
        healthy: bool = True
    ):
        self.response = response
        self.error = error
        self.fail_for = set(fail_for)
        self.healthy = healthy
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    @property
    def model_name(self) -> str:
        return "mock-ranker"

    def rank_jobs(self, jobs, user, timeout) -> List[Dict[str, Any]]:
        with self._lock:
            self.calls.append({"jobs": list(jobs), "user": user.email, "timeout": timeout})

        if self.error is not None and (not self.fail_for or user.email in self.fail_for):
            raise self.error
        if self.response is not None:
            return [dict(item) for item in self.response]
        return [
            {
                "job_index": idx,
                "match_score": max(10, 95 - (idx - 1) * 5),
                "match_reason": f"Good fit for {job.title}",
                "match_tags": ["mock"],
            }
            for idx, job in enumerate(jobs, start=1)
        ]

    def test_connection(self) -> bool:
        return self.healthy

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)


class SlowRankingProvider(MockRankingProvider):
    """Sleeps before answering, to exercise the hard timeout."""

    def __init__(self, delay_seconds: float, **kwargs):
        super().__init__(**kwargs)
        self.delay_seconds = delay_seconds

    def rank_jobs(self, jobs, user, timeout):
        time.sleep(self.delay_seconds)
        return super().rank_jobs(jobs, user, timeout)


class FakeClock:
    """Monotonic clock the tests can move forward."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
