"""GitHub issue -> Jira sync state machine.

For one GitHub issue this decides whether anything needs doing and, if so,
creates the Jira issue, labels the GitHub issue with ``jira:<KEY>`` and
optionally closes it with a linking comment::

    FETCHED -> SKIPPED_SYNCED
            -> SKIPPED_CLOSED
            -> CREATING -> CREATED -> LABELING -> LABELED -> CLOSING -> CLOSED
                                                          -> DONE

The label is the only idempotency guard. If labeling fails after the Jira
issue was created, nothing records the new key and the next run will create
a second Jira issue. That gap is logged loudly but not reconciled.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

from ghjira.output import write_output
from ghjira.sync.adf import compose_description
from ghjira.sync.body_parser import parse_issue_body
from ghjira.sync.field_mapper import derive_summary, resolve_issue_type, resolve_priority
from ghjira.sync.github_client import GitHubClientError, GitHubIssue
from ghjira.sync.jira_client import JiraClientError, JiraIssueDraft
from ghjira.sync.label_manager import LabelManager

if TYPE_CHECKING:
    from ghjira.config import SyncConfig
    from ghjira.sync.github_client import GitHubClient
    from ghjira.sync.jira_client import JiraClient

logger = logging.getLogger(__name__)

CLOSE_STATE_REASON = "not_planned"  # GitHub has no "migrated" reason


class SyncState(str, Enum):
    """Where an issue got to in the sync sequence."""

    FETCHED = "fetched"
    SKIPPED_SYNCED = "skipped_synced"
    SKIPPED_CLOSED = "skipped_closed"
    CREATING = "creating"
    CREATED = "created"
    LABELING = "labeling"
    LABELED = "labeled"
    CLOSING = "closing"
    CLOSED = "closed"
    DONE = "done"


TRANSITIONS: dict[SyncState, frozenset[SyncState]] = {
    SyncState.FETCHED: frozenset({SyncState.SKIPPED_SYNCED, SyncState.SKIPPED_CLOSED, SyncState.CREATING}),
    SyncState.CREATING: frozenset({SyncState.CREATED}),
    SyncState.CREATED: frozenset({SyncState.LABELING}),
    SyncState.LABELING: frozenset({SyncState.LABELED}),
    SyncState.LABELED: frozenset({SyncState.CLOSING, SyncState.DONE}),
    SyncState.CLOSING: frozenset({SyncState.CLOSED}),
}


class OutcomeStatus(str, Enum):
    """Reported result of processing one issue."""

    SYNCED = "synced"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    """Why an issue was skipped."""

    ALREADY_SYNCED = "already_synced"
    ALREADY_CLOSED = "already_closed"


@dataclass
class SyncOutcome:
    """Result of a sync attempt for one issue."""

    issue_number: int
    status: OutcomeStatus
    state: SyncState
    jira_key: str | None = None
    reason: SkipReason | None = None
    error: str | None = None


class IssueSyncError(Exception):
    """Syncing one issue failed part way through.

    ``jira_key`` is set when the Jira issue was created before the failure.
    """

    def __init__(self, issue_number: int, state: SyncState, cause: Exception, jira_key: str | None = None) -> None:
        super().__init__(f"Issue #{issue_number} failed in state {state.value}: {cause}")
        self.issue_number = issue_number
        self.state = state
        self.jira_key = jira_key

    def to_outcome(self) -> SyncOutcome:
        return SyncOutcome(
            issue_number=self.issue_number,
            status=OutcomeStatus.FAILED,
            state=self.state,
            jira_key=self.jira_key,
            error=str(self),
        )


class _SyncRun:
    """Tracks the state of one issue and rejects out-of-order transitions."""

    def __init__(self, issue_number: int) -> None:
        self.issue_number = issue_number
        self.state = SyncState.FETCHED
        self.jira_key: str | None = None

    def advance(self, target: SyncState) -> None:
        if target not in TRANSITIONS.get(self.state, frozenset()):
            raise RuntimeError(f"Invalid sync transition for #{self.issue_number}: {self.state.value} -> {target.value}")
        logger.debug(f"#{self.issue_number}: {self.state.value} -> {target.value}")
        self.state = target


class IssueSynchronizer:
    """Syncs single GitHub issues into Jira.

    Holds no state between calls; everything it knows about an issue comes
    from the issue's labels.
    """

    def __init__(
        self,
        config: SyncConfig,
        github: GitHubClient,
        jira: JiraClient,
        label_manager: LabelManager | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            config: Sync configuration.
            github: Open GitHub client for the configured repository.
            jira: Open Jira client.
            label_manager: Sync label writer (built from ``github`` if None).
            clock: Returns the "synced at" time for closing comments.
        """
        self.config = config
        self.github = github
        self.jira = jira
        self.label_manager = label_manager or LabelManager(github)
        self._clock = clock or (lambda: datetime.now(UTC))

    # =========================================================================
    # Entry Points
    # =========================================================================

    async def sync_issue(self, issue_number: int) -> SyncOutcome:
        """Fetch an issue and run it through the sync sequence.

        Raises:
            IssueSyncError: If any external call fails.
        """
        logger.info(f"── Issue #{issue_number} ──")
        try:
            issue = await self.github.get_issue(issue_number)
        except GitHubClientError as e:
            raise IssueSyncError(issue_number, SyncState.FETCHED, e) from e
        return await self.sync_fetched(issue)

    async def sync_issue_safe(self, issue_number: int) -> SyncOutcome:
        """Like ``sync_issue`` but reports failures as a FAILED outcome."""
        try:
            return await self.sync_issue(issue_number)
        except IssueSyncError as e:
            logger.error(f"❌ #{issue_number}: {e}")
            return e.to_outcome()

    async def sync_fetched(self, issue: GitHubIssue) -> SyncOutcome:
        """Run an already fetched issue through the sync sequence.

        Raises:
            IssueSyncError: If any external call fails.
        """
        run = _SyncRun(issue.number)

        existing_key = self.label_manager.detect_sync_key(issue.labels)
        if existing_key:
            run.advance(SyncState.SKIPPED_SYNCED)
            logger.info(f"⏭  #{issue.number} already synced as {existing_key}, skipping")
            return SyncOutcome(
                issue_number=issue.number,
                status=OutcomeStatus.SKIPPED,
                state=run.state,
                jira_key=existing_key,
                reason=SkipReason.ALREADY_SYNCED,
            )

        if issue.state == "closed" and not self.config.sync_closed_issues:
            run.advance(SyncState.SKIPPED_CLOSED)
            logger.info(f"⏭  #{issue.number} is closed, skipping")
            return SyncOutcome(
                issue_number=issue.number,
                status=OutcomeStatus.SKIPPED,
                state=run.state,
                reason=SkipReason.ALREADY_CLOSED,
            )

        try:
            await self._create(run, issue)
            await self._label(run)
            if self.config.close_after_sync and issue.state != "closed":
                await self._close(run)
            else:
                run.advance(SyncState.DONE)
        except (GitHubClientError, JiraClientError) as e:
            self._report_failure(run, e)
            raise IssueSyncError(issue.number, run.state, e, jira_key=run.jira_key) from e

        self._write_output(run)
        logger.info(f"🎉 #{issue.number} -> {run.jira_key}")
        return SyncOutcome(
            issue_number=issue.number,
            status=OutcomeStatus.SYNCED,
            state=run.state,
            jira_key=run.jira_key,
        )

    # =========================================================================
    # Draft Building
    # =========================================================================

    def build_draft(self, issue: GitHubIssue) -> JiraIssueDraft:
        """Build the Jira issue for a GitHub issue."""
        mappings = self.config.mappings
        meta = parse_issue_body(issue.body)
        return JiraIssueDraft(
            project_key=self.config.project_key,
            summary=derive_summary(issue.title),
            description=compose_description(issue, meta),
            issue_type=resolve_issue_type(issue.labels, mappings.issue_types, self.config.default_issue_type),
            priority=resolve_priority(issue.labels, mappings.priority),
        )

    def closing_comment(self, jira_key: str) -> str:
        """Markdown comment linking the GitHub issue to its Jira copy."""
        jira_url = self.jira.browse_url(jira_key)
        synced_at = self._clock().isoformat(timespec="seconds")
        return "\n".join(
            [
                "## ✅ Synced to Jira",
                "",
                f"This issue has been automatically migrated to Jira as **[{jira_key}]({jira_url})**.",
                "",
                "| | |",
                "|---|---|",
                f"| **Jira ticket** | [{jira_key}]({jira_url}) |",
                f"| **Project** | `{self.config.project_key}` |",
                f"| **Synced** | {synced_at} |",
                "",
                "_This GitHub issue is now closed. All tracking continues in Jira._",
            ]
        )

    # =========================================================================
    # Steps
    # =========================================================================

    async def _create(self, run: _SyncRun, issue: GitHubIssue) -> None:
        run.advance(SyncState.CREATING)
        draft = self.build_draft(issue)
        logger.info(f"Creating Jira {draft.issue_type} [{draft.priority}]: '{draft.summary}'")

        run.jira_key = await self.jira.create_issue(draft)
        run.advance(SyncState.CREATED)
        logger.info(f"✅ Created {run.jira_key}")

    async def _label(self, run: _SyncRun) -> None:
        assert run.jira_key is not None
        run.advance(SyncState.LABELING)
        await self.label_manager.apply_sync_label(run.issue_number, run.jira_key)
        run.advance(SyncState.LABELED)

    def _write_output(self, run: _SyncRun) -> None:
        # Runs once the issue is labeled and closed; write errors do not fail the sync
        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would write output jira_key={run.jira_key}")
            return
        try:
            write_output(self.config.output_path, "jira_key", run.jira_key)
        except OSError as e:
            logger.error(f"#{run.issue_number} synced as {run.jira_key} but writing {self.config.output_path} failed: {e}")

    async def _close(self, run: _SyncRun) -> None:
        assert run.jira_key is not None
        run.advance(SyncState.CLOSING)
        logger.info(f"Closing #{run.issue_number} -> {run.jira_key}")

        await self.github.add_comment(run.issue_number, self.closing_comment(run.jira_key))
        await self.github.close_issue(run.issue_number, state_reason=CLOSE_STATE_REASON)
        run.advance(SyncState.CLOSED)

    def _report_failure(self, run: _SyncRun, error: Exception) -> None:
        if run.state in (SyncState.CREATED, SyncState.LABELING):
            logger.error(
                f"Jira issue {run.jira_key} was created but #{run.issue_number} could not be labeled: {error}. "
                f"The next run will create a duplicate unless 'jira:{run.jira_key}' is added by hand."
            )
        elif run.state == SyncState.CLOSING:
            logger.warning(f"#{run.issue_number} is labeled as {run.jira_key} but could not be closed: {error}")
        else:
            logger.error(f"#{run.issue_number} failed while {run.state.value}: {error}")
