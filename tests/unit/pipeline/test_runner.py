"""
Unit tests for the matching pipeline runner.
"""
import json
import threading
from unittest.mock import MagicMock

import pytest

from core.app_context import AppContext
from core.audit import InMemoryAuditSink
from core.config_loader import AppConfig
from pipeline.runner import run_matching_pipeline, load_records
from tests.mocks.ranking_mocks import MockRankingProvider


USERS = [
    {"email": "ada@example.com", "target_cities": "London, Paris", "career_path": "tech"},
    {"email": "bob@example.com", "target_cities": ["Berlin"], "career_path": "finance"},
]

JOBS = [
    {
        "id": "job-1",
        "title": "Graduate Software Engineer",
        "company": "Acme",
        "location": "London",
        "categories": "early-career, career:tech-transformation, loc:london",
        "posted_at": "2026-03-01T09:00:00Z",
    },
    {
        "id": "job-2",
        "title": "Finance Analyst Intern",
        "company": "Bank",
        "location": "Berlin",
        "tags": ["early-career", "career:finance-investment", "loc:berlin"],
        "posted_at": "2026-02-27T09:00:00Z",
    },
]


@pytest.fixture
def ctx():
    return AppContext.build(AppConfig(), provider=MockRankingProvider(), audit_sink=InMemoryAuditSink())


class TestLoadRecords:

    def test_loads_json_array(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text(json.dumps(USERS + ["not a record"]))
        assert load_records(str(path)) == USERS

    def test_missing_file(self, tmp_path):
        assert load_records(str(tmp_path / "missing.json")) == []

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert load_records(str(path)) == []

    def test_not_an_array(self, tmp_path):
        path = tmp_path / "obj.json"
        path.write_text(json.dumps({"email": "ada@example.com"}))
        assert load_records(str(path)) == []


class TestRunMatchingPipeline:

    def test_matches_dict_records(self, ctx):
        statuses = []
        result = run_matching_pipeline(ctx, USERS, JOBS, status_callback=statuses.append)

        assert result.success is True
        assert result.users_count == 2
        assert result.matches_count >= 2
        assert result.error is None
        assert result.summary.users_processed == 2
        assert result.confident_count == result.matches_count
        assert statuses == ["preparing", "matching", "completed"]

    def test_confident_count_follows_categorize_threshold(self):
        config = AppConfig.model_validate({"matching": {"scoring": {"thresholds": {"categorize": 1.01}}}})
        ctx = AppContext.build(config, provider=MockRankingProvider(), audit_sink=InMemoryAuditSink())
        result = run_matching_pipeline(ctx, USERS, JOBS)
        assert result.matches_count >= 2
        assert result.confident_count == 0

    def test_no_users(self, ctx):
        result = run_matching_pipeline(ctx, [], JOBS)
        assert result.success is True
        assert result.users_count == 0
        assert result.error == "No users to match"

    def test_no_jobs_still_reports_users(self, ctx):
        result = run_matching_pipeline(ctx, USERS, [])
        assert result.success is True
        assert result.users_count == 2
        assert result.matches_count == 0

    def test_stopped_early(self, ctx):
        stop_event = threading.Event()
        stop_event.set()
        result = run_matching_pipeline(ctx, USERS, JOBS, stop_event=stop_event)
        assert result.success is True
        assert result.users_count == 0
        assert result.error == "Stopped early: 2 users not matched"

    def test_orchestrator_crash_is_reported(self):
        ctx = MagicMock()
        ctx.orchestrator.run_batch.side_effect = RuntimeError("pool exploded")
        result = run_matching_pipeline(ctx, USERS, JOBS)
        assert result.success is False
        assert result.error == "pool exploded"
