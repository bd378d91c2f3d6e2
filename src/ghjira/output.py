"""Write step outputs for the host automation (GitHub Actions ``GITHUB_OUTPUT``)."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def write_output(path: Path | None, key: str, value: str) -> bool:
    """Append a ``key=value`` line to the output file.

    Returns:
        False if no output file is configured.
    """
    if path is None:
        return False

    with path.open("a", encoding="utf-8") as f:
        f.write(f"{key}={value}\n")
    logger.debug(f"Wrote output {key}={value} to {path}")
    return True
