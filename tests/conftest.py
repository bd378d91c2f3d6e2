"""Shared fixtures."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from fakes import FakeJira

from ghjira.config import SyncConfig
from ghjira.sync.jira_client import JiraClientError


@pytest.fixture
def config() -> SyncConfig:
    """Single-issue config with no courtesy delay."""
    return SyncConfig(
        github_token="gh-token",
        repo="owner/repo",
        issue_number=1,
        jira_url="https://test.atlassian.net",
        jira_email="bot@example.com",
        jira_token="jira-token",
        project_key="PROJ",
        courtesy_delay=0,
    )


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


@pytest.fixture
def fake_jira() -> FakeJira:
    return FakeJira()


@pytest.fixture
def jira_error() -> JiraClientError:
    return JiraClientError("Jira POST /rest/api/3/issue -> 400: bad", status_code=400, body="bad")
