"""Configuration management for ghjira."""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

DEFAULT_MAPPINGS_FILE = Path(".ghjira.yaml")

REPO_PATTERN = re.compile(r"^[\w.-]+/[\w.-]+$")
PROJECT_KEY_PATTERN = re.compile(r"^[A-Z][A-Z0-9]+$")

# Environment variable -> SyncConfig field
ENV_FIELDS = {
    "GITHUB_TOKEN": "github_token",
    "GH_REPO": "repo",
    "GH_ISSUE_NUMBER": "issue_number",
    "JIRA_BASE_URL": "jira_url",
    "JIRA_USER_EMAIL": "jira_email",
    "JIRA_API_TOKEN": "jira_token",
    "JIRA_PROJECT_KEY": "project_key",
    "JIRA_ISSUE_TYPE_DEFAULT": "default_issue_type",
    "GITHUB_OUTPUT": "output_path",
}

REQUIRED_ENV = (
    "GITHUB_TOKEN",
    "GH_REPO",
    "JIRA_BASE_URL",
    "JIRA_USER_EMAIL",
    "JIRA_API_TOKEN",
    "JIRA_PROJECT_KEY",
)


class ConfigError(Exception):
    """A required configuration value is missing or invalid."""


def _flag(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    if default:
        return value.strip().lower() != "false"
    return value.strip().lower() == "true"


class LabelMappings(BaseModel):
    """GitHub label -> Jira field tables.

    Both tables are ordered; lookups are exact and case-sensitive.
    """

    priority: dict[str, str] = Field(
        default_factory=lambda: {
            "priority:critical": "Highest",
            "priority:high": "High",
            "priority:medium": "Medium",
            "priority:low": "Low",
        },
        description="GitHub label -> Jira priority name",
    )
    issue_types: dict[str, str] = Field(
        default_factory=lambda: {
            "security": "Bug",
            "bug": "Bug",
            "tech-debt": "Task",
            "enhancement": "Story",
            "feature": "Story",
        },
        description="GitHub label -> Jira issue type name",
    )

    @classmethod
    def load(cls, path: Path | None = None) -> LabelMappings:
        """Load mappings from a YAML file, or use the defaults if it doesn't exist."""
        if path is None:
            path = DEFAULT_MAPPINGS_FILE

        if not path.exists():
            return cls()

        try:
            with path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse label mappings in {path}: {e}") from e

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid label mappings in {path}: {e}") from e


class SyncConfig(BaseModel):
    """Settings for one sync run.

    Built once at process entry and handed to every component.
    """

    github_token: str = Field(description="GitHub token with issues:write")
    repo: str = Field(description="Repository in 'owner/name' format")
    issue_number: int | None = Field(default=None, description="Issue to sync (single-issue mode)")
    jira_url: str = Field(description="Jira instance URL, e.g. https://company.atlassian.net")
    jira_email: str = Field(description="Jira user email for basic auth")
    jira_token: str = Field(description="Jira API token for basic auth")
    project_key: str = Field(description="Target Jira project key")
    dry_run: bool = Field(default=False, description="Log write operations without executing")
    bulk: bool = Field(default=False, description="Sync every open, unsynced issue")
    close_after_sync: bool = Field(default=True, description="Comment on and close the GitHub issue after syncing")
    default_issue_type: str = Field(default="Task", description="Jira issue type when no type label matches")
    sync_closed_issues: bool = Field(
        default=False,
        description="Create Jira tickets for closed, unlabeled issues instead of skipping them",
    )
    output_path: Path | None = Field(default=None, description="Host output file for key=value lines")
    courtesy_delay: float = Field(default=0.4, description="Pause in seconds after each created ticket in bulk mode")
    page_size: int = Field(default=100, description="Issues per page when listing")
    mappings: LabelMappings = Field(default_factory=LabelMappings)

    @field_validator("repo")
    @classmethod
    def _check_repo(cls, value: str) -> str:
        if not REPO_PATTERN.match(value):
            raise ValueError(f"repo must be 'owner/name', got {value!r}")
        return value

    @field_validator("jira_url")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("project_key")
    @classmethod
    def _check_project_key(cls, value: str) -> str:
        if not PROJECT_KEY_PATTERN.match(value):
            raise ValueError(f"project key must look like 'PROJ', got {value!r}")
        return value

    @model_validator(mode="after")
    def _check_mode(self) -> SyncConfig:
        if not self.bulk and self.issue_number is None:
            raise ValueError("GH_ISSUE_NUMBER is required for single-issue sync")
        return self

    @property
    def owner(self) -> str:
        return self.repo.split("/", 1)[0]

    @property
    def repo_name(self) -> str:
        return self.repo.split("/", 1)[1]

    @classmethod
    def from_env(cls, environ: Mapping[str, str], **overrides: Any) -> SyncConfig:
        """Build the config from environment-style values.

        Keyword overrides (e.g. from CLI flags) win over the environment;
        None means "not given".

        Raises:
            ConfigError: If a required value is missing or a value is invalid.
        """
        missing = [name for name in REQUIRED_ENV if not environ.get(name)]
        if missing:
            raise ConfigError(f"Missing required environment variable(s): {', '.join(missing)}")

        data: dict[str, Any] = {}
        for env_name, field_name in ENV_FIELDS.items():
            value = environ.get(env_name)
            if value:
                data[field_name] = value

        data["dry_run"] = _flag(environ.get("DRY_RUN"), default=False)
        data["bulk"] = _flag(environ.get("BULK_SYNC"), default=False)
        data["close_after_sync"] = _flag(environ.get("CLOSE_AFTER_SYNC"), default=True)
        data["sync_closed_issues"] = _flag(environ.get("SYNC_CLOSED_ISSUES"), default=False)

        mappings_file = environ.get("JIRA_MAPPINGS_FILE")
        if mappings_file and not Path(mappings_file).exists():
            raise ConfigError(f"Label mappings file not found: {mappings_file}")
        data["mappings"] = LabelMappings.load(Path(mappings_file) if mappings_file else None)

        data.update({key: value for key, value in overrides.items() if value is not None})

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(str(e)) from e
