"""Git-related exception classes.

Contains all exception classes for Git operations:
- GitError: Base exception for git-related errors
- NoStagedChangesError: Raised when there are no staged changes
- CommitError: Raised when git refuses a commit
"""


class GitError(Exception):
    """Custom exception for git-related errors."""

    pass


class NoStagedChangesError(GitError):
    """Raised when there are no staged changes."""

    pass


class CommitError(GitError):
    """Raised when 'git commit' fails.

    Attributes:
        commit_message: The message that could not be committed, kept so the
            caller can show it and nothing is lost.
    """

    def __init__(self, message: str, commit_message: str):
        super().__init__(message)
        self.commit_message = commit_message
