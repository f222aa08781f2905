"""
Tests for matching data models and record parsing.
"""
from datetime import datetime, timezone

import pytest

from core.models import (
    Job, UserPreferences, FreshnessTier, ExperienceTier, SubscriptionTier,
    MatchScore, MatchResult, QualityTier, Provenance, SessionSummary, UserMatchResult
)
from core.utils import JobFingerprinter, slugify, split_list, parse_timestamp


class TestJobFromDict:

    def test_tags_from_list(self):
        job = Job.from_dict({
            "id": "abc",
            "title": "Graduate Analyst",
            "tags": ["Early-Career", "career:tech", "loc:london"],
        })
        assert job.id == "abc"
        assert job.tags == frozenset({"early-career", "career:tech", "loc:london"})

    def test_tags_from_categories_string(self):
        job = Job.from_dict({"job_hash": "h1", "title": "Intern", "categories": "early-career, loc:paris"})
        assert job.id == "h1"
        assert job.has_tag("loc:paris")
        assert job.tags_with_prefix("loc") == ["paris"]

    def test_missing_id_uses_fingerprint(self):
        job = Job.from_dict({"title": "Analyst", "company": "Acme", "location": "London"})
        assert job.id == JobFingerprinter.calculate("Acme", "Analyst", "London")

    def test_malformed_fields_degrade(self):
        job = Job.from_dict({"title": None, "freshness_tier": "weird", "posted_at": "not a date"})
        assert job.title == ""
        assert job.tags == frozenset()
        assert job.freshness_tier is FreshnessTier.STALE
        assert job.posted_at is None

    def test_posted_at_parsed_as_aware(self):
        job = Job.from_dict({"title": "A", "posted_at": "2026-03-01T10:00:00Z"})
        assert job.posted_at == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


class TestUserPreferencesFromDict:

    def test_signup_record(self):
        user = UserPreferences.from_dict({
            "email": " ada@example.com ",
            "target_cities": "London, Paris, London",
            "languages_spoken": ["English", "French"],
            "career_path": "tech",
            "entry_level_preference": "Graduate scheme",
            "subscription_tier": "Premium",
        })
        assert user.email == "ada@example.com"
        assert user.target_cities == ("London", "Paris")
        assert user.languages == frozenset({"English", "French"})
        assert user.experience_tier is ExperienceTier.GRADUATE
        assert user.subscription_tier is SubscriptionTier.PREMIUM

    def test_missing_email_is_empty(self):
        user = UserPreferences.from_dict({"target_cities": ["Berlin"]})
        assert user.email == ""


class TestMatchResult:

    def test_to_record(self):
        job = Job(id="j1", title="Analyst")
        result = MatchResult(
            job=job,
            score=MatchScore(100, 70, 50, 100, 77),
            match_score=77,
            confidence=0.85,
            reason="Exact career path match",
            quality=QualityTier.GOOD,
            provenance=Provenance.FALLBACK,
            tags=("good-match", "early-career"),
            session_id="s1",
        )
        record = result.to_record()
        assert record["job_hash"] == "j1"
        assert record["match_score"] == 77
        assert record["match_quality"] == "good"
        assert record["match_algorithm"] == "fallback"
        assert record["match_tags"] == "good-match,early-career"
        assert record["session_id"] == "s1"

    def test_frozen(self):
        job = Job(id="j1", title="Analyst")
        with pytest.raises(Exception):
            job.title = "Other"


class TestSummaries:

    def test_session_summary_as_dict(self):
        summary = SessionSummary(session_id="s1", users_processed=3, processing_time_ms=12.3456)
        data = summary.as_dict()
        assert data["session_id"] == "s1"
        assert data["users_processed"] == 3
        assert data["processing_time_ms"] == 12.35

    def test_user_match_result_count(self):
        assert UserMatchResult(user="a@b.c").match_count == 0


class TestUtils:

    @pytest.mark.parametrize("raw,expected", [
        ("San Francisco, CA", "san-francisco-ca"),
        ("  London ", "london"),
        (None, ""),
    ])
    def test_slugify(self, raw, expected):
        assert slugify(raw) == expected

    def test_split_list(self):
        assert split_list("a, b,,c ") == ["a", "b", "c"]
        assert split_list(["x", " ", "y"]) == ["x", "y"]
        assert split_list(None) == []

    def test_parse_timestamp_naive_becomes_utc(self):
        parsed = parse_timestamp("2026-01-01T00:00:00")
        assert parsed.tzinfo is not None
        assert parse_timestamp("") is None
        assert parse_timestamp("garbage") is None

    def test_fingerprint_is_case_insensitive(self):
        assert JobFingerprinter.calculate("Acme", "Analyst", "London") == \
            JobFingerprinter.calculate("ACME ", "analyst", "london")
