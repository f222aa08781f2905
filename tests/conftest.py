"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
Record builders live in tests/mocks/ranking_mocks.py so unittest
classes can use them too.
"""

import pytest

from core.config_loader import MatchingConfig
from core.fallback import FallbackMatchingService
from core.scorer import ScoringService
from tests.mocks.ranking_mocks import make_job, make_user, FIXED_NOW


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "db: marks tests as requiring a database engine (deselect with '-m \"not db\"')"
    )


@pytest.fixture
def matching_config():
    return MatchingConfig()


@pytest.fixture
def scoring_service(matching_config):
    return ScoringService(matching_config.scoring, clock=lambda: FIXED_NOW)


@pytest.fixture
def fallback_service(scoring_service, matching_config):
    return FallbackMatchingService(scoring_service, matching_config.fallback)


@pytest.fixture
def london_user():
    return make_user()


@pytest.fixture
def eligible_jobs():
    """Two early-career jobs, one exact match for the london/tech user."""
    return [
        make_job("job-1", career="tech-transformation", city="london", days_old=1),
        make_job("job-2", career="finance-investment", city="paris", days_old=2),
    ]
