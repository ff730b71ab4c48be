"""Shared helpers for the gessage CLI commands."""

from typing import Optional

import typer

from gessage.global_config import GessageConfig, GlobalConfigError, load_config, save_config
from gessage.llm import BackendRegistry, UnknownBackendError, default_registry
from gessage.llm.registry import BackendDescriptor
from gessage.ui import select_option


def load_registry() -> BackendRegistry:
    return default_registry()


def load_user_config() -> GessageConfig:
    """Load ~/.gessage/config.yaml, exiting with an error message on failure."""
    try:
        return load_config()
    except GlobalConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def save_user_config(config: GessageConfig) -> None:
    """Save ~/.gessage/config.yaml, exiting with an error message on failure."""
    try:
        save_config(config)
    except GlobalConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def resolve_descriptor(
    registry: BackendRegistry,
    config: GessageConfig,
    name: Optional[str],
    label: str,
) -> BackendDescriptor:
    """Get the descriptor for --backend, or let the user pick one.

    Args:
        registry: Available backends.
        config: Loaded configuration, used to mark configured backends.
        name: Backend named on the command line, if any.
        label: Menu title shown when no name was given.

    Returns:
        The chosen BackendDescriptor.

    Raises:
        typer.Exit: If the name is unknown or no backends are registered.
    """
    known = registry.known()
    if not known:
        typer.echo("Error: no backends registered", err=True)
        raise typer.Exit(1)

    if not name:
        options = []
        for backend in known:
            mark = " (configured)" if backend in config.backends else ""
            options.append(f"{backend}{mark}")
        default = known.index(config.selected_backend) if config.selected_backend in known else 0
        name = known[select_option(label, options, default)]

    try:
        return registry.require(name)
    except UnknownBackendError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
