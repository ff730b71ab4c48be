"""Secret redaction for staged diffs.

Every diff passes through redact() before any of it is shown to a
backend. The rules are pattern based: they reduce the common ways
credentials leak into a commit, they do not prove a diff is secret free.

Contains:
- RedactionRule: A named pattern and its replacement
- RedactionResult: Sanitized text plus the number of replacements
- REDACTION_RULES: The ordered rule set
- redact: Apply the rules, then the line-level credential scan
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"
REDACTED_LINE = "[REDACTED LINE]"


@dataclass(frozen=True)
class RedactionRule:
    """A single redaction pattern.

    Attributes:
        name: Short identifier used in debug logs.
        pattern: Compiled pattern; every match is replaced.
        replacement: Replacement template passed to re.subn.
    """

    name: str
    pattern: re.Pattern
    replacement: str = REDACTED


@dataclass(frozen=True)
class RedactionResult:
    """Outcome of redacting a diff.

    Attributes:
        text: The sanitized diff.
        redacted_count: Number of substrings and lines replaced.
    """

    text: str
    redacted_count: int = 0


# Rules run in this order, each one on the output of the previous.
REDACTION_RULES = (
    RedactionRule(
        name="assignment",
        pattern=re.compile(
            r"""(api[-_ ]?key|secret|token|password|passwd|pwd)\s*[:=]\s*['"]?([A-Za-z0-9_\-=./+]{6,})['"]?""",
            re.IGNORECASE,
        ),
    ),
    RedactionRule(
        name="bearer",
        pattern=re.compile(
            r"authorization:\s*Bearer\s+[A-Za-z0-9_\-=./+]{10,}",
            re.IGNORECASE,
        ),
    ),
    RedactionRule(
        name="aws",
        pattern=re.compile(
            r"(x-amz-security-token|aws_secret_access_key|aws_access_key_id)\s*[:=]\s*[A-Za-z0-9/+=]{8,}",
            re.IGNORECASE,
        ),
    ),
    RedactionRule(
        name="private_key",
        pattern=re.compile(
            r"(PRIVATE KEY-----[\s\S]+?-----END [A-Z ]+-----)",
            re.IGNORECASE,
        ),
    ),
)

# Lines still containing one of these (lowercased) are dropped wholesale.
SUSPICIOUS_LINE_MARKERS = ("secret=", "password=", "token=", "api_key=", "apikey=")


def _is_suspicious_line(line: str) -> bool:
    lowered = line.lower()
    return any(marker in lowered for marker in SUSPICIOUS_LINE_MARKERS)


def redact(diff: str, rules: tuple[RedactionRule, ...] = REDACTION_RULES) -> RedactionResult:
    """Remove credential-shaped text from a diff.

    Args:
        diff: Raw diff text. Malformed input is treated as plain text.
        rules: Ordered rules to apply. Defaults to REDACTION_RULES.

    Returns:
        A RedactionResult with the sanitized text and replacement count.
    """
    text = diff
    count = 0

    for rule in rules:
        text, hits = rule.pattern.subn(rule.replacement, text)
        if hits:
            logger.debug("Redaction rule %r replaced %d match(es)", rule.name, hits)
        count += hits

    lines = text.split("\n")
    for i, line in enumerate(lines):
        if _is_suspicious_line(line):
            lines[i] = REDACTED_LINE
            count += 1

    if count:
        logger.debug("Redacted %d item(s) from the staged diff", count)

    return RedactionResult(text="\n".join(lines), redacted_count=count)


def truncate_utf8(text: str, max_bytes: int, marker: str = "") -> str:
    """Clamp text to a UTF-8 byte budget without splitting a character.

    Args:
        text: Text to clamp.
        max_bytes: Maximum size of the returned text in bytes, marker excluded.
            Zero or negative disables clamping.
        marker: Appended when the text was cut.

    Returns:
        The original text when it fits, otherwise the cut text plus marker.
    """
    encoded = text.encode("utf-8")
    if max_bytes <= 0 or len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore") + marker
