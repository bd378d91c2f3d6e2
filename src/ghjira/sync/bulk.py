"""Bulk sync of every open, unsynced issue in a repository."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ghjira.sync.github_sync import OutcomeStatus, SkipReason, SyncOutcome, SyncState
from ghjira.sync.label_manager import extract_sync_key

if TYPE_CHECKING:
    from ghjira.sync.github_client import GitHubClient, GitHubIssue
    from ghjira.sync.github_sync import IssueSynchronizer

logger = logging.getLogger(__name__)


@dataclass
class BulkSummary:
    """Counts for a bulk run."""

    synced: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: list[SyncOutcome] = field(default_factory=list)

    def record(self, outcome: SyncOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status == OutcomeStatus.SYNCED:
            self.synced += 1
        elif outcome.status == OutcomeStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    @property
    def total(self) -> int:
        return self.synced + self.skipped + self.failed


class BulkSyncDriver:
    """Runs the synchronizer over every open issue, one at a time.

    Issues are processed sequentially to stay inside API rate limits. A
    failing issue is counted and logged; the rest of the batch still runs.
    """

    def __init__(
        self,
        github: GitHubClient,
        synchronizer: IssueSynchronizer,
        page_size: int = 100,
        courtesy_delay: float = 0.4,
    ) -> None:
        """Initialize the driver.

        Args:
            github: Open GitHub client used for listing.
            synchronizer: Per-issue synchronizer.
            page_size: Issues requested per page.
            courtesy_delay: Seconds to wait after each created Jira issue.
        """
        self.github = github
        self.synchronizer = synchronizer
        self.page_size = page_size
        self.courtesy_delay = courtesy_delay

    async def iter_open_issues(self) -> AsyncIterator[GitHubIssue]:
        """Yield open issues page by page, leaving out pull requests."""
        page = 1
        while True:
            issues = await self.github.list_open_issues(page=page, per_page=self.page_size)
            if not issues:
                return

            for issue in issues:
                if issue.is_pull_request:
                    continue
                yield issue

            if len(issues) < self.page_size:
                return
            page += 1

    async def sync_all_unsynced(self) -> BulkSummary:
        """Sync every open issue that doesn't carry a sync label yet."""
        logger.info("🔍 Bulk sync: fetching all open issues without a jira: label...")
        summary = BulkSummary()

        # Listed up front: closing issues while paging would shift later pages
        issues = [issue async for issue in self.iter_open_issues()]
        logger.info(f"Found {len(issues)} open issue(s)")

        for issue in issues:
            existing_key = extract_sync_key(issue.labels)
            if existing_key:
                logger.debug(f"#{issue.number} already synced as {existing_key}")
                summary.record(
                    SyncOutcome(
                        issue_number=issue.number,
                        status=OutcomeStatus.SKIPPED,
                        state=SyncState.SKIPPED_SYNCED,
                        jira_key=existing_key,
                        reason=SkipReason.ALREADY_SYNCED,
                    )
                )
                continue

            # Re-fetched inside sync_issue so a label added since listing is seen
            outcome = await self.synchronizer.sync_issue_safe(issue.number)
            summary.record(outcome)

            if outcome.status == OutcomeStatus.SYNCED and self.courtesy_delay > 0:
                await asyncio.sleep(self.courtesy_delay)

        logger.info(f"📊 Bulk sync complete: synced {summary.synced}, skipped {summary.skipped}, failed {summary.failed}")
        return summary
