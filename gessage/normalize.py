"""Normalization of backend output into a valid Conventional Commit message.

Backends are asked for a bare commit message but routinely wrap it in code
fences, add markdown tables, number their steps or talk about what they are
doing. normalize_message() repairs all of that instead of rejecting it: for
any input it returns a CommitMessage whose title matches

    <type>(<scope>)?: <subject>

with <type> from the allowed set, whose title fits max_title_len and whose
body lines fit max_body_line_len.

Contains:
- NormalizeOptions: Limits and vocabulary used for repair
- title_pattern: Compiled title grammar for a set of types
- normalize_message: Repair arbitrary text into a CommitMessage
- wrap_line: Word-wrap a single line to a column limit
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from gessage.config import ALLOWED_TYPES, DEFAULT_TYPE, MAX_BODY_LINE_LEN, MAX_TITLE_LEN
from gessage.formatters import CommitMessage

logger = logging.getLogger(__name__)

FENCE = "```"
TABLE_MARKER = "|"
ENUMERATED_LINE = re.compile(r"^\d+\.")


@dataclass(frozen=True)
class NormalizeOptions:
    """Limits and vocabulary for normalization.

    Attributes:
        max_title_len: Titles longer than this are cut.
        max_body_line_len: Body lines longer than this are wrapped.
        allowed_types: Commit types accepted in a title (case-insensitive).
        default_type: Type prepended to titles that lack an allowed one.
    """

    max_title_len: int = MAX_TITLE_LEN
    max_body_line_len: int = MAX_BODY_LINE_LEN
    allowed_types: tuple[str, ...] = ALLOWED_TYPES
    default_type: str = DEFAULT_TYPE

    def __post_init__(self):
        types = tuple(t.strip().lower() for t in self.allowed_types if t and t.strip())
        default = self.default_type.strip().lower()
        object.__setattr__(self, "allowed_types", types)
        object.__setattr__(self, "default_type", default)

        if not types:
            raise ValueError("allowed_types cannot be empty")
        if default not in types:
            raise ValueError(f"default_type {default!r} is not one of {', '.join(types)}")
        # Room for "<type>: x" with the longest type and for "<default>: update"
        shortest_title = max(max(len(t) for t in types) + 3, len(default) + len(": update"))
        if self.max_title_len < shortest_title:
            raise ValueError(f"max_title_len must be at least {shortest_title}")
        if self.max_body_line_len < 1:
            raise ValueError("max_body_line_len must be positive")

    def minimal_message(self) -> CommitMessage:
        return CommitMessage(title=f"{self.default_type}: update")


@lru_cache(maxsize=16)
def title_pattern(types: tuple[str, ...]) -> re.Pattern:
    """Compile the title grammar for a set of commit types.

    Args:
        types: Allowed commit types.

    Returns:
        A case-insensitive pattern with type, scope and subject groups.
    """
    alternatives = "|".join(re.escape(t) for t in types)
    return re.compile(
        rf"^(?P<type>{alternatives})(?P<scope>\([^)]+\))?:\s+(?P<subject>.+)$",
        re.IGNORECASE,
    )


def _is_fence(line: str) -> bool:
    return line.strip().startswith(FENCE)


def _strip_fences(lines: list[str], pattern: re.Pattern) -> list[str]:
    """Remove fenced blocks, unwrapping the ones that hold a commit title.

    A paired block whose content contains a valid title loses only its fence
    lines; any other paired block is dropped with its content. Unpaired fence
    lines are dropped on their own.
    """
    out: list[str] = []
    i = 0
    while i < len(lines):
        if not _is_fence(lines[i]):
            out.append(lines[i])
            i += 1
            continue

        close = next((j for j in range(i + 1, len(lines)) if _is_fence(lines[j])), None)
        if close is None:
            i += 1
            continue

        inner = lines[i + 1:close]
        if any(pattern.match(line.strip()) for line in inner):
            out.extend(inner)
        else:
            logger.debug("Dropped fenced block of %d line(s)", len(inner))
        i = close + 1
    return out


def _is_meta_commentary(line: str) -> bool:
    lowered = line.lower()
    return "conventional commit" in lowered and ("generate" in lowered or "steps" in lowered)


def _canonical_title(match: re.Match) -> str:
    scope = match.group("scope") or ""
    return f"{match.group('type').lower()}{scope}: {match.group('subject').strip()}"


def _fit_title(title: str, options: NormalizeOptions, pattern: re.Pattern) -> str:
    """Cut a title to the length limit while keeping it grammatical."""
    if len(title) <= options.max_title_len:
        return title

    cut = title[:options.max_title_len].rstrip()
    if pattern.match(cut):
        return cut

    # The cut landed inside the scope or right after the colon.
    match = pattern.match(title)
    if match:
        rebuilt = f"{match.group('type').lower()}: {match.group('subject').strip()}"
        cut = rebuilt[:options.max_title_len].rstrip()
        if pattern.match(cut):
            return cut

    return f"{options.default_type}: update"


def wrap_line(line: str, width: int) -> list[str]:
    """Word-wrap a single line.

    Breaks at the last space at or before the limit, or hard-breaks at the
    limit when the chunk has no space.

    Args:
        line: The line to wrap. Must not contain newlines.
        width: Maximum line length.

    Returns:
        The wrapped lines. A line that fits is returned unchanged.
    """
    out = []
    while len(line) > width:
        break_at = line.rfind(" ", 1, width + 1)
        if break_at <= 0:
            out.append(line[:width])
            line = line[width:].lstrip(" ")
            continue
        out.append(line[:break_at].rstrip(" "))
        line = line[break_at:].lstrip(" ")
    out.append(line)
    return out


def _build_body(lines: list[str], width: int) -> Optional[str]:
    body: list[str] = []
    for raw in lines:
        line = raw.strip()
        if not line:
            # Collapse runs of blank lines into one paragraph break
            if body and body[-1] != "":
                body.append("")
            continue
        if ENUMERATED_LINE.match(line):
            continue
        if _is_meta_commentary(line):
            continue
        body.extend(wrap_line(line, width))

    while body and body[-1] == "":
        body.pop()
    return "\n".join(body) or None


def normalize_message(raw: Optional[str], options: Optional[NormalizeOptions] = None) -> CommitMessage:
    """Repair arbitrary backend output into a valid commit message.

    Never raises for bad text: anything that cannot be used as a title gets
    the default type prepended, and blank input becomes "<default>: update".

    Args:
        raw: Backend output, edited text or None.
        options: Normalization limits. Defaults to NormalizeOptions().

    Returns:
        A CommitMessage satisfying the title grammar and both length limits.
    """
    options = options or NormalizeOptions()
    pattern = title_pattern(options.allowed_types)

    text = (raw or "").strip()
    if not text:
        return options.minimal_message()

    lines = _strip_fences(text.splitlines(), pattern)
    lines = [line for line in lines if not line.strip().startswith(TABLE_MARKER)]

    title_idx = None
    title = ""
    for i, line in enumerate(lines):
        match = pattern.match(line.strip())
        if match:
            title_idx = i
            title = _canonical_title(match)
            break

    if title_idx is None:
        for i, line in enumerate(lines):
            if line.strip():
                title_idx = i
                title = f"{options.default_type}: {line.strip()}"
                logger.debug("No conventional title found, using first line with default type")
                break

    if title_idx is None:
        return options.minimal_message()

    title = _fit_title(title, options, pattern)
    body = _build_body(lines[title_idx + 1:], options.max_body_line_len)
    return CommitMessage(title=title, body=body)
