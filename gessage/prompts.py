"""Prompt construction for commit message generation.

Contains:
- SYSTEM_PROMPT: System instruction shared by chat backends
- PromptSpec: Everything a prompt is rendered from
- build_prompt: Render the instruction text for one generation attempt
"""

from dataclasses import dataclass, field
from typing import Optional

from gessage.config import ALLOWED_TYPES, MAX_BODY_LINE_LEN, MAX_TITLE_LEN

# System prompt for chat backends
SYSTEM_PROMPT = (
    "You are an assistant that writes Conventional Commit messages. "
    "Output only the commit message; no code fences."
)

PROMPT_TEMPLATE = """Generate a Conventional Commit message from the following staged git diff.
Constraints:
- title <= {max_title_len} characters
- optional body lines <= {max_body_line_len} columns
- types allowed: {type_list}
Output format:
- First line: "<type>(optional scope): <title>"
- Optional body: wrapped to {max_body_line_len} columns.
- Output ONLY the commit message. No steps, no tables, no quotes, no extra text.
- Do not include code fences, backticks, or explanations.
{hint}
Diff:
{diff}
"""


@dataclass(frozen=True)
class PromptSpec:
    """Inputs for a single prompt.

    Attributes:
        diff: The sanitized diff, included verbatim.
        allowed_types: Ordered commit types the backend may use.
        max_title_len: Title length limit stated in the prompt.
        max_body_line_len: Body column limit stated in the prompt.
        type_hint: Optional commit type the user asked for.
    """

    diff: str
    allowed_types: tuple[str, ...] = field(default=ALLOWED_TYPES)
    max_title_len: int = MAX_TITLE_LEN
    max_body_line_len: int = MAX_BODY_LINE_LEN
    type_hint: Optional[str] = None


def build_prompt(spec: PromptSpec) -> str:
    """Render the generation instruction for a prompt spec.

    The output depends only on the PromptSpec, so equal inputs give equal prompts.

    Args:
        spec: The prompt inputs.

    Returns:
        The prompt text.
    """
    hint = f"\nUser-specified type hint: {spec.type_hint}\n" if spec.type_hint else ""
    return PROMPT_TEMPLATE.format(
        max_title_len=spec.max_title_len,
        max_body_line_len=spec.max_body_line_len,
        type_list=", ".join(spec.allowed_types),
        hint=hint,
        diff=spec.diff,
    )
