"""Backend registry.

Maps backend names to the recipes that build, set up and tear down a
backend. The pipeline only ever talks to a registry instance, never to a
concrete backend module.

Contains:
- BackendDescriptor: Construction, setup and teardown recipe for one backend
- BackendRegistry: Name to descriptor mapping, safe for concurrent reads
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional

from gessage.llm.base import Generator
from gessage.llm.exceptions import DuplicateBackendError, UnknownBackendError

logger = logging.getLogger(__name__)

Settings = Dict[str, str]


@dataclass(frozen=True)
class BackendDescriptor:
    """Recipe for one generation backend.

    Attributes:
        name: Unique backend name.
        construct: Builds a Generator from the backend's settings map.
            Raises BackendConfigError (e.g. MissingAPIKeyError) when the
            settings are unusable.
        setup: Interactively collects a settings map. Receives the current
            settings, if any, to offer them as defaults.
        teardown: Optional cleanup for resources the backend started.
        variants: Optional list of model identifiers the user can pick from.
        description: One-line summary shown in menus.
    """

    name: str
    construct: Callable[[Settings], Generator]
    setup: Callable[..., Settings]
    teardown: Optional[Callable[[Settings], None]] = None
    variants: Optional[Callable[[], list[str]]] = None
    description: str = ""


class BackendRegistry:
    """Name to BackendDescriptor mapping.

    Reads never take the lock: every write builds a new dict and swaps the
    reference, so a reader always sees a complete mapping. Writes are
    serialized by the lock.
    """

    def __init__(self, descriptors: Optional[list[BackendDescriptor]] = None):
        self._lock = threading.Lock()
        self._backends: Mapping[str, BackendDescriptor] = {}
        for descriptor in descriptors or []:
            self.register(descriptor.name, descriptor)

    def register(self, name: str, descriptor: BackendDescriptor, replace: bool = False) -> None:
        """Register a backend under a name.

        Args:
            name: Backend name.
            descriptor: The backend's recipe.
            replace: Allow overriding an existing registration.

        Raises:
            DuplicateBackendError: If the name is taken and replace is False.
            ValueError: If the name is empty.
        """
        if not name or not name.strip():
            raise ValueError("backend name cannot be empty")

        with self._lock:
            if name in self._backends and not replace:
                raise DuplicateBackendError(f"backend {name!r} is already registered")
            updated = dict(self._backends)
            updated[name] = descriptor
            self._backends = updated

        logger.debug("Registered backend %r", name)

    def create(self, name: str, settings: Optional[Settings] = None) -> Generator:
        """Build a backend instance.

        Args:
            name: Backend name.
            settings: The backend's settings map.

        Returns:
            The Generator built by the backend's construct function.

        Raises:
            UnknownBackendError: If no backend is registered under the name.
            BackendConfigError: Propagated unchanged from construct.
        """
        return self.require(name).construct(dict(settings or {}))

    def known(self) -> list[str]:
        """Get the registered backend names, sorted."""
        return sorted(self._backends)

    def descriptor_for(self, name: str) -> Optional[BackendDescriptor]:
        """Get the descriptor registered under a name, or None."""
        return self._backends.get(name)

    def require(self, name: str) -> BackendDescriptor:
        """Get the descriptor registered under a name.

        Raises:
            UnknownBackendError: If no backend is registered under the name.
        """
        descriptor = self.descriptor_for(name)
        if descriptor is None:
            raise UnknownBackendError(name, self.known())
        return descriptor
