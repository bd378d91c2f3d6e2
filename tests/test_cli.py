"""Tests for the command line interface."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from ghjira import __version__
from ghjira.cli import EXIT_CONFIG, EXIT_FAILED, app
from ghjira.config import SyncConfig
from ghjira.sync.bulk import BulkSummary
from ghjira.sync.github_client import GitHubClientError
from ghjira.sync.github_sync import IssueSyncError, OutcomeStatus, SkipReason, SyncOutcome, SyncState
from ghjira.sync.jira_client import JiraClientError

runner = CliRunner()

ENV = {
    "GITHUB_TOKEN": "gh-token",
    "GH_REPO": "owner/repo",
    "GH_ISSUE_NUMBER": "42",
    "JIRA_BASE_URL": "https://test.atlassian.net",
    "JIRA_USER_EMAIL": "bot@example.com",
    "JIRA_API_TOKEN": "jira-token",
    "JIRA_PROJECT_KEY": "PROJ",
}

OPTIONAL_ENV = ("DRY_RUN", "BULK_SYNC", "CLOSE_AFTER_SYNC", "SYNC_CLOSED_ISSUES", "GITHUB_OUTPUT", "JIRA_MAPPINGS_FILE", "JIRA_ISSUE_TYPE_DEFAULT")


@pytest.fixture(autouse=True)
def _clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    for name in (*ENV, *OPTIONAL_ENV):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name, value in ENV.items():
        monkeypatch.setenv(name, value)


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestSyncConfigErrors:
    """Test exit codes for configuration problems."""

    def test_missing_env_exits_2(self) -> None:
        result = runner.invoke(app, ["sync"])
        assert result.exit_code == EXIT_CONFIG
        assert "GITHUB_TOKEN" in result.output

    def test_missing_issue_number_exits_2(self, env: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GH_ISSUE_NUMBER")
        result = runner.invoke(app, ["sync"])
        assert result.exit_code == EXIT_CONFIG

    def test_invalid_mappings_file_exits_2(self, env: None, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("priority: [1]\n")
        result = runner.invoke(app, ["sync", "--mappings", str(path)])
        assert result.exit_code == EXIT_CONFIG

    def test_broken_yaml_mappings_exits_2(self, env: None, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("priority: [unclosed\n")
        result = runner.invoke(app, ["sync", "--mappings", str(path)])
        assert result.exit_code == EXIT_CONFIG
        assert "Configuration error" in result.output

    def test_broken_yaml_from_env_exits_2(self, env: None, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("priority: [unclosed\n")
        monkeypatch.setenv("JIRA_MAPPINGS_FILE", str(path))
        result = runner.invoke(app, ["sync"])
        assert result.exit_code == EXIT_CONFIG


class TestSyncSingle:
    """Test single-issue runs."""

    def test_success(self, env: None) -> None:
        outcome = SyncOutcome(42, OutcomeStatus.SYNCED, SyncState.CLOSED, jira_key="PROJ-7")
        with patch("ghjira.cli.run_single", new_callable=AsyncMock, return_value=outcome) as mock_run:
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0
        assert "PROJ-7" in result.output
        config: SyncConfig = mock_run.await_args.args[0]
        assert config.issue_number == 42
        assert config.dry_run is False
        assert config.close_after_sync is True

    def test_skip_is_success(self, env: None) -> None:
        outcome = SyncOutcome(42, OutcomeStatus.SKIPPED, SyncState.SKIPPED_SYNCED, jira_key="PROJ-1", reason=SkipReason.ALREADY_SYNCED)
        with patch("ghjira.cli.run_single", new_callable=AsyncMock, return_value=outcome):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0

    def test_flags_override_env(self, env: None) -> None:
        outcome = SyncOutcome(9, OutcomeStatus.SYNCED, SyncState.LABELED, jira_key="PROJ-DRY")
        with patch("ghjira.cli.run_single", new_callable=AsyncMock, return_value=outcome) as mock_run:
            result = runner.invoke(app, ["sync", "--issue", "9", "--dry-run", "--no-close"])

        assert result.exit_code == 0
        config: SyncConfig = mock_run.await_args.args[0]
        assert config.issue_number == 9
        assert config.dry_run is True
        assert config.close_after_sync is False

    def test_failure_exits_1(self, env: None) -> None:
        error = IssueSyncError(42, SyncState.CREATING, JiraClientError("Jira POST -> 400: bad", status_code=400))
        with patch("ghjira.cli.run_single", new_callable=AsyncMock, side_effect=error):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == EXIT_FAILED
        assert "Sync failed" in result.output


class TestSyncBulk:
    """Test bulk runs."""

    def test_bulk_success(self, env: None) -> None:
        summary = BulkSummary()
        summary.record(SyncOutcome(1, OutcomeStatus.SYNCED, SyncState.CLOSED, jira_key="PROJ-1"))
        with patch("ghjira.cli.run_bulk", new_callable=AsyncMock, return_value=summary) as mock_run:
            result = runner.invoke(app, ["sync", "--bulk"])

        assert result.exit_code == 0
        assert mock_run.await_args.args[0].bulk is True

    def test_bulk_without_issue_number(self, env: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GH_ISSUE_NUMBER")
        monkeypatch.setenv("BULK_SYNC", "true")
        with patch("ghjira.cli.run_bulk", new_callable=AsyncMock, return_value=BulkSummary()):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0

    def test_bulk_with_failures_exits_1(self, env: None) -> None:
        summary = BulkSummary()
        summary.record(SyncOutcome(1, OutcomeStatus.SYNCED, SyncState.CLOSED, jira_key="PROJ-1"))
        summary.record(SyncOutcome(2, OutcomeStatus.FAILED, SyncState.CREATING, error="Jira POST -> 503"))
        with patch("ghjira.cli.run_bulk", new_callable=AsyncMock, return_value=summary):
            result = runner.invoke(app, ["sync", "--bulk"])

        assert result.exit_code == EXIT_FAILED
        assert "#2" in result.output

    def test_listing_failure_exits_1(self, env: None) -> None:
        error = GitHubClientError("GitHub GET -> 500", status_code=500)
        with patch("ghjira.cli.run_bulk", new_callable=AsyncMock, side_effect=error):
            result = runner.invoke(app, ["sync", "--bulk"])

        assert result.exit_code == EXIT_FAILED
        assert "aborted" in result.output
