"""Backend-related exception classes.

Contains all exception classes for generation backends:
- LLMError: Base exception for backend-related errors
- UnknownBackendError: Raised when a backend name is not registered
- DuplicateBackendError: Raised when a backend name is registered twice
- BackendConfigError: Raised when a backend's settings are unusable
- MissingAPIKeyError: Raised when a hosted backend has no API key
- GenerationError: Raised when a generation call fails
- RuntimeUnreachableError: Raised when a local runtime cannot be reached
- RequestRejectedError: Raised when a reachable runtime refuses a request
- GenerationCancelledError: Raised when the caller cancelled generation
"""

from typing import Iterable, Optional


class LLMError(Exception):
    """Base exception for backend-related errors."""

    pass


class UnknownBackendError(LLMError):
    """Raised when a backend name is not registered."""

    def __init__(self, name: str, known: Iterable[str]):
        self.name = name
        self.known = sorted(known)
        known_list = ", ".join(self.known) if self.known else "none"
        super().__init__(f"unknown backend {name!r}; known: {known_list}")


class DuplicateBackendError(LLMError):
    """Raised when a backend name is registered twice without replace=True."""

    pass


class BackendConfigError(LLMError):
    """Raised when a backend cannot be constructed from its settings."""

    pass


class MissingAPIKeyError(BackendConfigError):
    """Raised when the required API key is not set."""

    pass


class GenerationError(LLMError):
    """Raised when a backend fails to produce text.

    Attributes:
        status_code: HTTP status of the failed request, when there was one.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RuntimeUnreachableError(GenerationError):
    """Raised when a local inference runtime does not answer at all."""

    pass


class RequestRejectedError(GenerationError):
    """Raised when a reachable runtime answers with a non-success status."""

    pass


class GenerationCancelledError(GenerationError):
    """Raised when generation was cancelled before or during the call."""

    pass
