"""Commit message model and rendering."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class CommitMessage(BaseModel):
    """A finalized commit message.

    Attributes:
        title: The Conventional Commit title line.
        body: Optional body text, already wrapped. None when there is no body.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    body: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_must_be_single_line(cls, v: str) -> str:
        """Ensure title is a single non-empty line."""
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        if "\n" in v:
            raise ValueError("Title must be a single line")
        return v

    @field_validator("body")
    @classmethod
    def blank_body_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Collapse an empty or whitespace-only body to None."""
        if v is None or not v.strip():
            return None
        return v.strip("\n")

    def render(self) -> str:
        return render_commit_message(self)


def render_commit_message(message: CommitMessage) -> str:
    """Render a CommitMessage into the text handed to git.

    Args:
        message: The commit message.

    Returns:
        The title alone, or the title, one blank line and the body.

    Example output:
        feat(cli): add dry-run flag

        Print the sanitized diff and prompt without calling a backend.
    """
    if message.body is None:
        return message.title
    return f"{message.title}\n\n{message.body}"
