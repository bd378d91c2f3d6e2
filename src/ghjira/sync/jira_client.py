"""Jira REST API v3 client for issue creation.

This module provides an async HTTP client for the one Jira operation the
sync needs: creating an issue from a draft. Authentication is basic auth
built from the user email and an Atlassian API token.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Jira API constants
DEFAULT_TIMEOUT = 30.0
PROVENANCE_LABELS = ("auto-migrated", "gh-issue-jira-sync")
DRY_RUN_KEY_SUFFIX = "DRY"


class JiraClientError(Exception):
    """Base exception for Jira client errors.

    Carries the remote status code and response body verbatim.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class JiraAuthError(JiraClientError):
    """Authentication with Jira failed."""


class JiraRateLimitError(JiraClientError):
    """Jira API rate limit exceeded."""

    def __init__(self, message: str, retry_after: int | None = None, body: str = "") -> None:
        super().__init__(message, status_code=429, body=body)
        self.retry_after = retry_after  # Seconds to wait before retry


class JiraNotFoundError(JiraClientError):
    """Requested resource not found."""


@dataclass
class JiraIssueDraft:
    """A Jira issue to be created, built in memory per sync attempt."""

    project_key: str
    summary: str
    description: dict[str, Any]
    issue_type: str
    priority: str
    labels: list[str] = field(default_factory=lambda: list(PROVENANCE_LABELS))

    def to_payload(self) -> dict[str, Any]:
        """Render the REST v3 create-issue body."""
        return {
            "fields": {
                "project": {"key": self.project_key},
                "summary": self.summary,
                "description": self.description,
                "issuetype": {"name": self.issue_type},
                "priority": {"name": self.priority},
                "labels": list(self.labels),
            }
        }


def parse_retry_after(value: str | None, now: datetime | None = None) -> int | None:
    """Seconds to wait from a ``Retry-After`` header.

    The header is either a number of seconds or an HTTP date. Returns None
    when it is absent or unreadable; a date in the past gives 0.
    """
    if value is None:
        return None
    value = value.strip()
    if value.isdigit():
        return int(value)

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    now = now or datetime.now(UTC)
    return max(0, int((when - now).total_seconds()))


def dry_run_key(project_key: str) -> str:
    """Placeholder key returned instead of a real one in dry-run mode.

    It never matches the ``jira:<KEY>-<NUMBER>`` sync label pattern.
    """
    return f"{project_key}-{DRY_RUN_KEY_SUFFIX}"


class JiraClient:
    """Async Jira REST API v3 client for issue creation."""

    def __init__(
        self,
        base_url: str,
        email: str,
        token: str,
        dry_run: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the Jira client.

        Args:
            base_url: Jira instance URL (e.g., https://company.atlassian.net).
            email: User email for authentication.
            token: API token.
            dry_run: If True, log operations without executing.
            timeout: Request timeout in seconds.

        Raises:
            JiraAuthError: If the email or token is empty.
        """
        # Normalize base URL (remove trailing slash)
        self.base_url = base_url.rstrip("/")
        self.dry_run = dry_run
        self.timeout = timeout

        if not token:
            raise JiraAuthError("No Jira API token provided. Set JIRA_API_TOKEN.")
        if not email:
            raise JiraAuthError("No Jira email provided. Set JIRA_USER_EMAIL.")
        self._email = email
        self._token = token

        # Build Basic Auth header (email:token base64 encoded) - never log!
        credentials = f"{self._email}:{self._token}"
        encoded = base64.b64encode(credentials.encode()).decode()
        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Basic {encoded}",
        }

        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> JiraClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError("JiraClient must be used as async context manager")
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a single HTTP request and map error statuses to exceptions.

        Args:
            method: HTTP method (GET, POST, etc.).
            endpoint: API endpoint (e.g., "/rest/api/3/issue").
            **kwargs: Additional arguments passed to httpx request.

        Returns:
            httpx.Response object.

        Raises:
            JiraAuthError: If authentication fails.
            JiraRateLimitError: If the rate limit is hit.
            JiraNotFoundError: If resource is not found.
            JiraClientError: For other API or transport errors.
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            raise JiraClientError(f"Jira {method} {endpoint} failed: {e}") from e

        if response.status_code < 400:
            return response

        error_body = response.text
        message = f"Jira {method} {endpoint} -> {response.status_code}: {error_body}"

        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            raise JiraRateLimitError(message, retry_after=retry_after, body=error_body)
        if response.status_code in (401, 403):
            raise JiraAuthError(message, status_code=response.status_code, body=error_body)
        if response.status_code == 404:
            raise JiraNotFoundError(message, status_code=404, body=error_body)

        logger.error(f"Jira API error {response.status_code}: {error_body}")
        raise JiraClientError(message, status_code=response.status_code, body=error_body)

    def _decode(self, response: httpx.Response, parse: Callable[[Any], T]) -> T:
        """Parse a successful response body.

        Raises:
            JiraClientError: If the body isn't JSON or lacks expected fields.
        """
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise JiraClientError(
                f"Jira returned an unexpected body ({response.status_code}): {e!r}",
                status_code=response.status_code,
                body=response.text,
            ) from e

    # =========================================================================
    # Issue Operations
    # =========================================================================

    async def create_issue(self, draft: JiraIssueDraft) -> str:
        """Create an issue and return its key (e.g. "PROJ-42").

        In dry-run mode the payload is logged and a placeholder key from
        ``dry_run_key`` is returned.
        """
        payload = draft.to_payload()

        if self.dry_run:
            logger.info(f"[DRY RUN] Would create Jira issue in {draft.project_key}")
            logger.debug(f"[DRY RUN] Payload: {json.dumps(payload, indent=2)}")
            return dry_run_key(draft.project_key)

        response = await self._request("POST", "/rest/api/3/issue", json=payload)
        key = self._decode(response, lambda data: data.get("key"))
        if not key:
            raise JiraClientError(
                f"Jira create returned no issue key: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return key

    def browse_url(self, issue_key: str) -> str:
        """Web URL of an issue."""
        return f"{self.base_url}/browse/{issue_key}"
