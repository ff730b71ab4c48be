"""Generation capability shared by all backends.

Contains:
- Generator: Protocol every backend instance satisfies
- GenerationContext: Cancellation flag and per-call time budget
- get_api_key: Settings-then-environment API key lookup
- setting_int / setting_float: Tolerant numeric settings parsing
"""

import os
import threading
from typing import Dict, Optional, Protocol, runtime_checkable

from gessage.config import get_api_key_env_var
from gessage.llm.exceptions import GenerationCancelledError, MissingAPIKeyError


@runtime_checkable
class Generator(Protocol):
    """A backend instance able to draft a commit message.

    Implementations bound their own network call with a finite timeout,
    raise GenerationError (carrying the status) for non-success responses,
    and return "" for a decodable but empty response. They never make up
    fallback text themselves.
    """

    def generate(self, ctx: "GenerationContext", prompt: str, max_tokens: int) -> str:
        ...


class GenerationContext:
    """Cancellation and timeout shared by every generation call of a run.

    Args:
        timeout: Optional upper bound in seconds for each generation call.
            Backends use the smaller of this and their own timeout.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Mark the run as cancelled. Later calls to bounded() raise."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def bounded(self, own_timeout: float) -> float:
        """Get the timeout to use for the next network call.

        Args:
            own_timeout: The backend's configured timeout in seconds.

        Returns:
            The effective timeout in seconds.

        Raises:
            GenerationCancelledError: If the context was cancelled.
        """
        if self.cancelled:
            raise GenerationCancelledError("generation cancelled")
        if self.timeout is None or self.timeout <= 0:
            return own_timeout
        return min(own_timeout, self.timeout)


def get_api_key(settings: Dict[str, str], backend: str, provider_name: str) -> str:
    """Get a hosted backend's API key.

    The settings map written by 'gessage setup' wins over the environment
    variable (which may come from a .env file).

    Args:
        settings: The backend's settings map.
        backend: Backend name, used to find its environment variable.
        provider_name: Human-readable provider name for error messages.

    Returns:
        The API key string.

    Raises:
        MissingAPIKeyError: If the API key is not found.
    """
    api_key = (settings.get("api_key") or "").strip()
    if api_key:
        return api_key

    env_var = get_api_key_env_var(backend)
    if env_var:
        api_key = (os.getenv(env_var) or "").strip()
        if api_key:
            return api_key

    hint = f"  1. Environment variable: export {env_var}=your_key_here\n" if env_var else ""
    raise MissingAPIKeyError(
        f"{provider_name} API key not found. Set it using:\n"
        f"{hint}"
        f"  {'2' if env_var else '1'}. Run: gessage setup --backend {backend}"
    )


def setting_float(settings: Dict[str, str], key: str, default: float) -> float:
    """Read a positive number from a settings map, falling back on bad values."""
    try:
        value = float(settings.get(key, ""))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def setting_int(settings: Dict[str, str], key: str, default: int) -> int:
    """Read a positive integer from a settings map, falling back on bad values."""
    try:
        value = int(settings.get(key, ""))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default
