"""Pytest configuration and fixtures for unit tests."""

from datetime import UTC, datetime
from unittest.mock import PropertyMock, patch

import pytest

from src.core.config import Settings
from tests.unit.mocks import make_template_document


# Monday 3 June 2024, 01:00 UTC (the default generation hour)
MONDAY = datetime(2024, 6, 3, 1, 0, tzinfo=UTC)
MONDAY_INDEX = "1"  # 0=Sunday


@pytest.fixture
def monday() -> datetime:
    """The instant most tests evaluate against."""
    return MONDAY


@pytest.fixture
def test_settings() -> Settings:
    """Settings with defaults, independent of the environment."""
    return Settings(_env_file=None, appwrite_api_key="test-key")


@pytest.fixture
def daily_document() -> dict:
    """A daily template that has never generated."""
    return make_template_document()


@pytest.fixture
def weekly_document() -> dict:
    """A weekly template targeting Monday that has never generated."""
    return make_template_document(
        **{
            "$id": "tmpl_weekly",
            "title": "Take out the bins",
            "recurrence_type": "weekly",
            "recurrence_details": MONDAY_INDEX,
            "priority": "high",
            "points": 10,
        }
    )


@pytest.fixture(autouse=True)
def redis_unavailable():
    """Keep job history in memory for every unit test."""
    with patch("src.core.scheduler_tracker.redis_client") as mock_redis:
        type(mock_redis).is_available = PropertyMock(return_value=False)
        yield mock_redis
