"""Git command runner.

Contains:
- _run_git_command: Run a git command and return its output
- get_staged_diff: Read the staged diff
- commit_with_message: Commit the staged changes with a message
"""

import logging
import subprocess
from typing import Optional

from gessage.git.exceptions import CommitError, GitError, NoStagedChangesError

logger = logging.getLogger(__name__)


def _run_git_command(args: list[str], input: Optional[str] = None, strip: bool = True) -> str:
    """Run a git command and return its output.

    Args:
        args: List of arguments to pass to git.
        input: Text fed to the command's stdin.
        strip: Strip surrounding whitespace from the output.

    Returns:
        The stdout of the git command.

    Raises:
        GitError: If the command fails.
    """
    logger.debug("Running: git %s", " ".join(args))
    try:
        result = subprocess.run(
            ["git"] + args,
            input=input,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=True,
        )
    except subprocess.CalledProcessError as e:
        details = (e.stderr or e.stdout or "").strip()
        raise GitError(f"Git command failed: git {' '.join(args)}\n{details}".rstrip())
    except FileNotFoundError:
        raise GitError("Git is not installed or not in PATH.")
    return result.stdout.strip() if strip else result.stdout


def get_staged_diff() -> str:
    """Get the staged diff.

    Returns:
        Output of 'git diff --staged --no-color'.

    Raises:
        NoStagedChangesError: If nothing is staged.
        GitError: If git fails (e.g. outside a repository).
    """
    diff = _run_git_command(["diff", "--staged", "--no-color"], strip=False)
    if not diff.strip():
        raise NoStagedChangesError("No staged changes. Use `git add` first.")
    return diff


def commit_with_message(message: str) -> None:
    """Commit the staged changes with exactly the given message.

    Args:
        message: The full commit message, passed to git on stdin.

    Raises:
        CommitError: If git refuses the commit. Carries the message.
    """
    try:
        output = _run_git_command(["commit", "-F", "-"], input=message)
    except GitError as e:
        raise CommitError(str(e), commit_message=message)
    logger.debug("git commit: %s", output)
