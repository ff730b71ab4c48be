"""Generation backends for gessage.

Backends are plain descriptors collected into a BackendRegistry instance.
Nothing is registered at import time: callers build a registry with
default_registry() and pass it to the pipeline.
"""

from dotenv import load_dotenv

from gessage.llm.base import GenerationContext, Generator
from gessage.llm.exceptions import (
    BackendConfigError,
    DuplicateBackendError,
    GenerationCancelledError,
    GenerationError,
    LLMError,
    MissingAPIKeyError,
    RequestRejectedError,
    RuntimeUnreachableError,
    UnknownBackendError,
)
from gessage.llm.registry import BackendDescriptor, BackendRegistry
from gessage.llm.selector import DEFAULT_POLICY, SelectionPolicy, select_backend

# Load environment variables from .env file
load_dotenv()


def builtin_descriptors() -> list[BackendDescriptor]:
    """Get the descriptors of the bundled backends."""
    from gessage.llm import anthropic_provider, ollama_provider, openai_provider, openrouter_provider

    return [
        openai_provider.DESCRIPTOR,
        openrouter_provider.DESCRIPTOR,
        anthropic_provider.DESCRIPTOR,
        ollama_provider.DESCRIPTOR,
    ]


def default_registry() -> BackendRegistry:
    """Build a registry holding every bundled backend.

    Returns:
        A new BackendRegistry. Each call returns an independent instance.
    """
    return BackendRegistry(builtin_descriptors())


__all__ = [
    "BackendConfigError",
    "BackendDescriptor",
    "BackendRegistry",
    "DEFAULT_POLICY",
    "DuplicateBackendError",
    "GenerationCancelledError",
    "GenerationContext",
    "GenerationError",
    "Generator",
    "LLMError",
    "MissingAPIKeyError",
    "RequestRejectedError",
    "RuntimeUnreachableError",
    "SelectionPolicy",
    "UnknownBackendError",
    "builtin_descriptors",
    "default_registry",
    "select_backend",
]
