"""Backend selection by diff size."""

from dataclasses import dataclass
from typing import Optional

from gessage.config import LARGE_DIFF_BACKEND, SELECTION_THRESHOLD_BYTES, SMALL_DIFF_BACKEND


@dataclass(frozen=True)
class SelectionPolicy:
    """Size threshold and the backend used on each side of it.

    Attributes:
        threshold_bytes: Largest sanitized diff sent to small_backend.
        small_backend: Backend for diffs at or below the threshold.
        large_backend: Backend for diffs above the threshold.
    """

    threshold_bytes: int = SELECTION_THRESHOLD_BYTES
    small_backend: str = SMALL_DIFF_BACKEND
    large_backend: str = LARGE_DIFF_BACKEND


DEFAULT_POLICY = SelectionPolicy()


def select_backend(explicit: Optional[str], size: int, policy: SelectionPolicy = DEFAULT_POLICY) -> str:
    """Choose the backend for a run.

    Args:
        explicit: Backend the user asked for. Wins whenever non-empty.
        size: Size of the sanitized diff in bytes.
        policy: Threshold and backend names.

    Returns:
        The backend name.
    """
    if explicit:
        return explicit
    if size <= policy.threshold_bytes:
        return policy.small_backend
    return policy.large_backend
