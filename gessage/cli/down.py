"""CLI command for stopping a backend's local resources."""

from typing import Optional

import typer

from gessage.cli.utils import load_registry, load_user_config, resolve_descriptor
from gessage.global_config import get_backend_settings


def down_command(
    backend: Optional[str] = typer.Option(
        None,
        "--backend",
        "--model",
        "-m",
        help="Backend to stop (e.g. ollama)",
    ),
) -> None:
    """Stop or unload local backend resources (e.g. the Ollama model and service)."""
    config = load_user_config()
    registry = load_registry()
    descriptor = resolve_descriptor(registry, config, backend, "Select a backend to stop:")

    if descriptor.teardown is None:
        typer.echo(f"Backend {descriptor.name} has nothing to stop.")
        return

    try:
        descriptor.teardown(get_backend_settings(config, descriptor.name))
    except OSError as e:
        typer.echo(f"Error: stop {descriptor.name}: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"✓ Stopped {descriptor.name}")
