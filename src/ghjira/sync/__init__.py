"""GitHub issue -> Jira synchronization module."""

from ghjira.sync.bulk import BulkSummary, BulkSyncDriver
from ghjira.sync.github_client import GitHubClient, GitHubClientError, GitHubIssue
from ghjira.sync.github_sync import IssueSyncError, IssueSynchronizer, OutcomeStatus, SyncOutcome, SyncState
from ghjira.sync.jira_client import JiraClient, JiraClientError, JiraIssueDraft
from ghjira.sync.label_manager import LabelManager, build_sync_label_name, extract_sync_key

__all__ = [
    "BulkSummary",
    "BulkSyncDriver",
    "GitHubClient",
    "GitHubClientError",
    "GitHubIssue",
    "IssueSyncError",
    "IssueSynchronizer",
    "JiraClient",
    "JiraClientError",
    "JiraIssueDraft",
    "LabelManager",
    "OutcomeStatus",
    "SyncOutcome",
    "SyncState",
    "build_sync_label_name",
    "extract_sync_key",
]
