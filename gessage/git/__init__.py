"""Git integration for gessage.

- exceptions: GitError, NoStagedChangesError, CommitError
- runner: _run_git_command, get_staged_diff, commit_with_message
"""

from gessage.git.exceptions import (
    CommitError,
    GitError,
    NoStagedChangesError,
)
from gessage.git.runner import (
    _run_git_command,
    commit_with_message,
    get_staged_diff,
)

__all__ = [
    "CommitError",
    "GitError",
    "NoStagedChangesError",
    "_run_git_command",
    "commit_with_message",
    "get_staged_diff",
]
