"""Map GitHub issue labels and titles onto Jira fields."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

DEFAULT_PRIORITY = "Medium"
SUMMARY_MAX_LENGTH = 255

# One or more leading "[...]" groups, e.g. "[TODO][P1 CRITICAL] "
BRACKET_PREFIX_PATTERN = re.compile(r"^(?:\[[^\]]*\]\s*)+")


def _first_match(labels: Iterable[str], table: Mapping[str, str]) -> str | None:
    for name in labels:
        if name in table:
            return table[name]
    return None


def resolve_priority(
    labels: Iterable[str],
    priority_table: Mapping[str, str],
    default: str = DEFAULT_PRIORITY,
) -> str:
    """Jira priority for the first label found in ``priority_table``.

    If an issue carries two priority labels, the one the tracker lists
    first decides.
    """
    return _first_match(labels, priority_table) or default


def resolve_issue_type(
    labels: Iterable[str],
    type_table: Mapping[str, str],
    default: str,
) -> str:
    """Jira issue type for the first label found in ``type_table``."""
    return _first_match(labels, type_table) or default


def derive_summary(title: str) -> str:
    """Jira summary from a GitHub title.

    Strips leading bracketed tags and clamps to Jira's 255 character limit.
    A title made only of tags is kept as is.
    """
    summary = BRACKET_PREFIX_PATTERN.sub("", title).strip() or title.strip()
    return summary[:SUMMARY_MAX_LENGTH].rstrip()
