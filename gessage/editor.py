"""Editing a proposed commit message in the user's editor."""

import logging
import os
import shlex
import shutil
import subprocess
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class EditorError(Exception):
    """Raised when the edited message cannot be obtained."""
    pass


def find_editor() -> list[str]:
    """Find an available text editor.

    Preference order:
    1. $VISUAL environment variable
    2. $EDITOR environment variable
    3. nano
    4. vi

    Returns:
        List of command parts to run the editor.
    """
    for var in ("VISUAL", "EDITOR"):
        editor = os.environ.get(var, "").strip()
        if editor:
            return shlex.split(editor)

    if shutil.which("nano"):
        return ["nano"]

    # Last resort: vi
    return ["vi"]


def edit_in_editor(text: str) -> str:
    """Let the user edit text and return the result.

    The text is written to a temporary file, the editor runs attached to the
    terminal and the file is read back once it exits.

    Args:
        text: Initial content.

    Returns:
        The edited content.

    Raises:
        EditorError: If the editor cannot be started or exits with an error.
    """
    editor_cmd = find_editor()

    fd, name = tempfile.mkstemp(prefix="gessage-", suffix=".txt")
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            if not text.endswith("\n"):
                f.write("\n")

        logger.debug("Opening editor: %s", " ".join(editor_cmd))
        try:
            result = subprocess.run(editor_cmd + [str(path)], check=False)
        except OSError as e:
            raise EditorError(f"Editor not found: {editor_cmd[0]} ({e})")

        if result.returncode != 0:
            raise EditorError(f"Editor exited with code {result.returncode}")

        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise EditorError(f"Could not read edited message: {e}")
    finally:
        path.unlink(missing_ok=True)
