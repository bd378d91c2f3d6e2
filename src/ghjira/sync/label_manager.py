"""Sync label encoding and lifecycle on GitHub issues.

The ``jira:<KEY>`` label is the only record that an issue has been synced,
so this module owns both reading it back from a label set and writing it
onto an issue.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ghjira.sync.github_client import GitHubClient

logger = logging.getLogger(__name__)

SYNC_LABEL_PREFIX = "jira:"
SYNC_LABEL_PATTERN = re.compile(r"^jira:([A-Z][A-Z0-9]+-\d+)$")
SYNC_LABEL_COLOR = "0075ca"


def extract_sync_key(labels: Iterable[str]) -> str | None:
    """Return the Jira key of the first ``jira:<KEY>`` label, or None.

    Label order is the tracker's; when several sync labels are present the
    first one wins.
    """
    for name in labels:
        match = SYNC_LABEL_PATTERN.match(name)
        if match:
            return match.group(1)
    return None


def build_sync_label_name(jira_key: str) -> str:
    """Label name recording that an issue was synced as ``jira_key``."""
    return f"{SYNC_LABEL_PREFIX}{jira_key}"


class LabelManager:
    """Writes the sync label onto GitHub issues.

    Handles:
    - Creating the repository label if it doesn't exist yet
    - Attaching it to the issue
    """

    def __init__(self, client: GitHubClient, color: str = SYNC_LABEL_COLOR) -> None:
        self.client = client
        self.color = color

    def detect_sync_key(self, current_labels: list[str]) -> str | None:
        """Get the Jira key recorded on an issue, if any."""
        return extract_sync_key(current_labels)

    async def apply_sync_label(self, issue_number: int, jira_key: str) -> str:
        """Ensure the sync label exists and attach it to the issue.

        ``jira_key`` must come from a successful Jira create call.

        Args:
            issue_number: The issue number.
            jira_key: Key of the Jira issue just created.

        Returns:
            The label name that was applied.
        """
        name = build_sync_label_name(jira_key)
        logger.info(f"Applying label '{name}' to issue #{issue_number}")

        await self.client.ensure_label(name, self.color, f"Synced to Jira as {jira_key}")
        await self.client.add_labels(issue_number, [name])
        return name
