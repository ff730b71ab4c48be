"""Deterministic commit message built from diff statistics.

Used when the first generation attempt fails or returns nothing usable.
It never calls a backend and never fails, so the pipeline always has a
message to propose.
"""

from dataclasses import dataclass, field

from gessage.config import DEFAULT_TYPE, MAX_TITLE_LEN
from gessage.formatters import CommitMessage

NEW_FILE_MARKER = "+++ b/"
OLD_FILE_MARKER = "--- a/"
DEV_NULL = "/dev/null"


@dataclass
class DiffStats:
    """Line-oriented statistics of a unified diff."""

    files: list[str] = field(default_factory=list)
    additions: int = 0
    deletions: int = 0


def count_diff_stats(diff: str) -> DiffStats:
    """Collect touched paths and added/removed line counts.

    Args:
        diff: Unified diff text.

    Returns:
        DiffStats with paths in first-seen order, without duplicates.
    """
    stats = DiffStats()
    seen = set()

    for line in diff.splitlines():
        name = None
        if line.startswith(NEW_FILE_MARKER):
            name = line[len(NEW_FILE_MARKER):]
        elif line.startswith(OLD_FILE_MARKER):
            name = line[len(OLD_FILE_MARKER):]

        if name:
            name = name.rstrip()
            if name and name != DEV_NULL and name not in seen:
                seen.add(name)
                stats.files.append(name)

        if line.startswith("+") and not line.startswith("+++"):
            stats.additions += 1
        elif line.startswith("-") and not line.startswith("---"):
            stats.deletions += 1

    return stats


def fallback_from_diff(diff: str, max_title_len: int = MAX_TITLE_LEN) -> CommitMessage:
    """Compose a commit message from diff statistics alone.

    Args:
        diff: The staged diff. Nothing derived from it leaves the process.
        max_title_len: Title length limit.

    Returns:
        A "chore: update <paths>" message with addition and deletion counts
        in the body when they are non-zero.
    """
    stats = count_diff_stats(diff)
    files = stats.files or ["files"]

    title = f"{DEFAULT_TYPE}: update {', '.join(files)}"
    title = title[:max_title_len].rstrip().rstrip(",")

    body_lines = []
    if stats.additions:
        body_lines.append(f"- Additions: {stats.additions}")
    if stats.deletions:
        body_lines.append(f"- Deletions: {stats.deletions}")

    return CommitMessage(title=title, body="\n".join(body_lines) or None)
