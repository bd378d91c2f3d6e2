"""GitHub API client using httpx for issue synchronization.

This module provides an async HTTP client for the GitHub REST API
operations the sync needs: reading issues, managing the sync label,
commenting and closing. Each call is attempted once; a failed run is
recovered by running the sync again.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

# GitHub API constants
GITHUB_API_BASE = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GitHubAuthError(GitHubClientError):
    """Authentication with GitHub failed."""


class GitHubRateLimitError(GitHubClientError):
    """GitHub API rate limit exceeded."""

    def __init__(self, message: str, reset_at: int | None = None) -> None:
        super().__init__(message, status_code=403)
        self.reset_at = reset_at  # Unix timestamp when rate limit resets


class GitHubNotFoundError(GitHubClientError):
    """Requested resource not found."""


@dataclass
class GitHubIssue:
    """Represents a GitHub issue."""

    number: int
    title: str
    state: str  # "open" or "closed"
    labels: list[str] = field(default_factory=list)
    body: str = ""
    url: str = ""
    is_pull_request: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> GitHubIssue:
        """Build an issue from a REST API payload."""
        return cls(
            number=data["number"],
            title=data.get("title", ""),
            state=data.get("state", "open"),
            labels=[label["name"] for label in data.get("labels", [])],
            body=data.get("body") or "",
            url=data.get("html_url", ""),
            is_pull_request="pull_request" in data,
        )


@dataclass
class GitHubLabel:
    """Represents a GitHub label."""

    name: str
    color: str
    description: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> GitHubLabel:
        return cls(
            name=data["name"],
            color=data["color"],
            description=data.get("description") or "",
        )


class LabelStatus(str, Enum):
    """Outcome of looking up a repository label by name."""

    EXISTS = "exists"
    NOT_FOUND = "not_found"


@dataclass
class LabelLookup:
    """Result of a label lookup.

    Only a 404 yields NOT_FOUND; any other failure is raised.
    """

    status: LabelStatus
    label: GitHubLabel | None = None

    @property
    def exists(self) -> bool:
        return self.status == LabelStatus.EXISTS


class GitHubClient:
    """Async GitHub API client for issue synchronization.

    Write operations are skipped (and logged) in dry-run mode; reads
    always go to the API.
    """

    def __init__(
        self,
        repo: str,
        token: str,
        dry_run: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = GITHUB_API_BASE,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            repo: Repository in 'owner/repo' format.
            token: GitHub token.
            dry_run: If True, log write operations without executing.
            timeout: Request timeout in seconds.
            base_url: API root, overridable for GitHub Enterprise.

        Raises:
            GitHubAuthError: If the token is empty.
        """
        self.repo = repo
        self.dry_run = dry_run
        self.timeout = timeout
        self.base_url = base_url

        if not token:
            raise GitHubAuthError("No GitHub token provided. Set GITHUB_TOKEN.")
        self._token = token

        # Build headers - never log the token!
        self._headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }

        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GitHubClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError("GitHubClient must be used as async context manager")
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a single HTTP request and map error statuses to exceptions.

        Args:
            method: HTTP method (GET, POST, PATCH, etc.).
            endpoint: API endpoint (e.g., "/repos/owner/repo/issues/1").
            **kwargs: Additional arguments passed to httpx request.

        Returns:
            httpx.Response object.

        Raises:
            GitHubAuthError: If authentication fails.
            GitHubRateLimitError: If the rate limit is exhausted.
            GitHubNotFoundError: If resource is not found.
            GitHubClientError: For other API or transport errors.
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            raise GitHubClientError(f"GitHub {method} {endpoint} failed: {e}") from e

        if response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0":
            reset_header = response.headers.get("X-RateLimit-Reset", "")
            reset_at = int(reset_header) if reset_header.isdigit() else None
            raise GitHubRateLimitError(
                f"GitHub API rate limit exceeded. Resets at {reset_at}",
                reset_at=reset_at,
            )

        if response.status_code == 401:
            raise GitHubAuthError("GitHub authentication failed. Check your token.", status_code=401)

        if response.status_code == 404:
            raise GitHubNotFoundError(f"Resource not found: {endpoint}", status_code=404)

        if response.status_code >= 400:
            error_body = response.text
            logger.error(f"GitHub API error {response.status_code}: {error_body}")
            raise GitHubClientError(
                f"GitHub {method} {endpoint} -> {response.status_code}: {error_body}",
                status_code=response.status_code,
                body=error_body,
            )

        return response

    def _decode(self, response: httpx.Response, parse: Callable[[Any], T]) -> T:
        """Parse a successful response body.

        Raises:
            GitHubClientError: If the body isn't JSON or lacks expected fields.
        """
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise GitHubClientError(
                f"GitHub returned an unexpected body ({response.status_code}): {e!r}",
                status_code=response.status_code,
                body=response.text,
            ) from e

    # =========================================================================
    # Issue Operations
    # =========================================================================

    async def get_issue(self, issue_number: int) -> GitHubIssue:
        """Get a single issue by number."""
        endpoint = f"/repos/{self.repo}/issues/{issue_number}"
        response = await self._request("GET", endpoint)
        return self._decode(response, GitHubIssue.from_api)

    async def list_open_issues(self, page: int, per_page: int = 100) -> list[GitHubIssue]:
        """List one page of open issues.

        The issues endpoint also returns pull requests; they come back with
        ``is_pull_request`` set and are left for the caller to filter.

        Args:
            page: 1-based page number.
            per_page: Page size (GitHub caps this at 100).

        Returns:
            Issues on the page, in API order.
        """
        endpoint = f"/repos/{self.repo}/issues"
        response = await self._request(
            "GET",
            endpoint,
            params={"state": "open", "per_page": per_page, "page": page},
        )
        return self._decode(response, lambda items: [GitHubIssue.from_api(item) for item in items])

    async def add_labels(
        self,
        issue_number: int,
        labels: list[str],
    ) -> list[str]:
        """Add labels to an issue (preserves existing labels).

        Returns:
            List of all label names after update.
        """
        if self.dry_run:
            logger.info(f"[DRY RUN] Would add labels to #{issue_number}: {labels}")
            return labels

        endpoint = f"/repos/{self.repo}/issues/{issue_number}/labels"
        response = await self._request(
            "POST",
            endpoint,
            json={"labels": labels},
        )
        return self._decode(response, lambda items: [label["name"] for label in items])

    async def add_comment(
        self,
        issue_number: int,
        body: str,
    ) -> int:
        """Add a comment to an issue.

        Returns:
            Comment ID (0 in dry-run mode).
        """
        if self.dry_run:
            logger.info(f"[DRY RUN] Would add comment to #{issue_number}: {body[:50]}...")
            return 0

        endpoint = f"/repos/{self.repo}/issues/{issue_number}/comments"
        response = await self._request(
            "POST",
            endpoint,
            json={"body": body},
        )
        return self._decode(response, lambda data: data["id"])

    async def close_issue(
        self,
        issue_number: int,
        state_reason: str = "not_planned",
    ) -> bool:
        """Close an issue with the given state reason.

        GitHub only knows "completed", "not_planned" and "reopened" as
        reasons.

        Returns:
            True if closed (or would have been, in dry-run mode).
        """
        if self.dry_run:
            logger.info(f"[DRY RUN] Would close #{issue_number} as {state_reason}")
            return True

        endpoint = f"/repos/{self.repo}/issues/{issue_number}"
        await self._request(
            "PATCH",
            endpoint,
            json={"state": "closed", "state_reason": state_reason},
        )
        return True

    # =========================================================================
    # Label Operations
    # =========================================================================

    async def get_label(self, name: str) -> LabelLookup:
        """Look up a repository label by exact name.

        Returns:
            LabelLookup with EXISTS and the label, or NOT_FOUND.

        Raises:
            GitHubClientError: For any failure other than a 404.
        """
        endpoint = f"/repos/{self.repo}/labels/{name}"
        try:
            response = await self._request("GET", endpoint)
        except GitHubNotFoundError:
            return LabelLookup(status=LabelStatus.NOT_FOUND)

        return LabelLookup(status=LabelStatus.EXISTS, label=self._decode(response, GitHubLabel.from_api))

    async def create_label(
        self,
        name: str,
        color: str,
        description: str = "",
    ) -> GitHubLabel:
        """Create a new label.

        Args:
            name: Label name.
            color: Hex color (without #).
            description: Label description.

        Returns:
            Created GitHubLabel.
        """
        if self.dry_run:
            logger.info(f"[DRY RUN] Would create label '{name}' with color {color}")
            return GitHubLabel(name=name, color=color, description=description)

        endpoint = f"/repos/{self.repo}/labels"
        response = await self._request(
            "POST",
            endpoint,
            json={
                "name": name,
                "color": color,
                "description": description,
            },
        )
        return self._decode(response, GitHubLabel.from_api)

    async def ensure_label(
        self,
        name: str,
        color: str,
        description: str = "",
    ) -> GitHubLabel:
        """Ensure a label exists, creating it only when the lookup says NOT_FOUND."""
        lookup = await self.get_label(name)
        if lookup.exists and lookup.label is not None:
            return lookup.label
        return await self.create_label(name, color, description)
