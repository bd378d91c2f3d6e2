"""Build Jira issue descriptions in Atlassian Document Format (ADF).

Reference: https://developer.atlassian.com/cloud/jira/platform/apis/document/structure/
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ghjira.sync.body_parser import IssueMetadata
    from ghjira.sync.github_client import GitHubIssue

TOOL_NAME = "gh-issue-jira-sync"
DEFAULT_CODE_LANGUAGE = "text"

# (row label, IssueMetadata attribute) in table order
DETAIL_FIELDS = (
    ("File", "file"),
    ("Line", "line"),
    ("Branch", "branch"),
    ("Commit", "commit"),
    ("Introduced", "introduced"),
    ("Author", "author"),
)


def text(value: str, *marks: str) -> dict[str, Any]:
    node: dict[str, Any] = {"type": "text", "text": value}
    if marks:
        node["marks"] = [{"type": mark} for mark in marks]
    return node


def paragraph(*content: dict[str, Any]) -> dict[str, Any]:
    return {"type": "paragraph", "content": list(content)}


def heading(value: str, level: int = 3) -> dict[str, Any]:
    return {"type": "heading", "attrs": {"level": level}, "content": [text(value)]}


def blockquote(value: str) -> dict[str, Any]:
    return {"type": "blockquote", "content": [paragraph(text(value))]}


def code_block(code: str, language: str) -> dict[str, Any]:
    # ADF rejects empty text nodes
    return {"type": "codeBlock", "attrs": {"language": language}, "content": [text(code)] if code else []}


def table_row(cells: list[str], header: bool = False) -> dict[str, Any]:
    cell_type = "tableHeader" if header else "tableCell"
    return {
        "type": "tableRow",
        "content": [{"type": cell_type, "attrs": {}, "content": [paragraph(text(cell))]} for cell in cells],
    }


def table(rows: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "type": "table",
        "attrs": {"isNumberColumnEnabled": False, "layout": "default"},
        "content": rows,
    }


def detail_rows(issue: GitHubIssue, meta: IssueMetadata) -> list[tuple[str, str]]:
    """(label, value) pairs for the details table, skipping empty fields.

    The GitHub issue link is always the last row.
    """
    rows = [(label, getattr(meta, attr)) for label, attr in DETAIL_FIELDS if getattr(meta, attr)]
    rows.append(("GitHub Issue", issue.url))
    return rows


def compose_description(issue: GitHubIssue, meta: IssueMetadata) -> dict[str, Any]:
    """Build the ADF description for the Jira copy of ``issue``.

    Missing metadata shortens the document; it never fails.
    """
    content: list[dict[str, Any]] = [
        paragraph(
            text("Auto-migrated from GitHub Issues by ", "em"),
            text(TOOL_NAME, "em", "strong"),
            text(".", "em"),
        ),
        blockquote(meta.todo_text or issue.title),
        heading("Details"),
        table([table_row(["Field", "Value"], header=True)] + [table_row([label, value]) for label, value in detail_rows(issue, meta)]),
    ]

    if meta.code_block is not None:
        content.append(heading("Code Context"))
        content.append(code_block(meta.code_block.code, meta.code_block.language or DEFAULT_CODE_LANGUAGE))

    return {"version": 1, "type": "doc", "content": content}
