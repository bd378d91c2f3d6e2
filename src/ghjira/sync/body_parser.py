"""Extract metadata from GitHub issue bodies.

Issues opened by TODO scanners carry a markdown table (File, Line, Branch,
...), a quoted "TODO Comment" section and a fenced "Code Context" block.
Freeform bodies simply yield empty metadata.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

TODO_PATTERN = re.compile(r"##\s*TODO Comment\s*\n+>\s*(.+)")
CODE_CONTEXT_PATTERN = re.compile(r"##\s*Code Context\s*\n+(```[\s\S]*?```)")
FENCE_LANGUAGE_PATTERN = re.compile(r"^```(\w+)")
FENCE_OPEN_PATTERN = re.compile(r"^```\w*\n?")
FENCE_CLOSE_PATTERN = re.compile(r"\n?```$")


def _table_field(body: str, name: str) -> str | None:
    # | File | `src/app.py` |
    pattern = re.compile(rf"\|\s*{re.escape(name)}\s*\|\s*`?([^`|\n]+?)`?\s*\|")
    match = pattern.search(body)
    if match:
        return match.group(1).strip() or None
    return None


@dataclass
class CodeBlock:
    """A fenced code block with its fence language, if any."""

    code: str
    language: str | None = None

    @classmethod
    def from_fenced(cls, fenced: str) -> CodeBlock:
        """Split a ```lang ... ``` block into language and code."""
        language_match = FENCE_LANGUAGE_PATTERN.match(fenced)
        code = FENCE_OPEN_PATTERN.sub("", fenced, count=1)
        code = FENCE_CLOSE_PATTERN.sub("", code, count=1)
        return cls(code=code, language=language_match.group(1) if language_match else None)


@dataclass
class IssueMetadata:
    """Fields pulled out of an issue body. Absent fields are None."""

    todo_text: str | None = None
    code_block: CodeBlock | None = None
    file: str | None = None
    line: str | None = None
    branch: str | None = None
    commit: str | None = None
    introduced: str | None = None
    author: str | None = None


def parse_issue_body(body: str | None) -> IssueMetadata:
    """Extract TODO text, code context and table fields from an issue body."""
    body = body or ""

    todo_match = TODO_PATTERN.search(body)
    code_match = CODE_CONTEXT_PATTERN.search(body)

    return IssueMetadata(
        todo_text=todo_match.group(1).strip() if todo_match else None,
        code_block=CodeBlock.from_fenced(code_match.group(1)) if code_match else None,
        file=_table_field(body, "File"),
        line=_table_field(body, "Line"),
        branch=_table_field(body, "Branch"),
        commit=_table_field(body, "Commit"),
        introduced=_table_field(body, "Introduced"),
        author=_table_field(body, "Author"),
    )
