"""CLI command for configuring a backend."""

from typing import Optional

import typer

from gessage.cli.utils import load_registry, load_user_config, resolve_descriptor, save_user_config
from gessage.global_config import get_backend_settings, set_backend_settings
from gessage.llm import LLMError


def setup_command(
    backend: Optional[str] = typer.Option(
        None,
        "--backend",
        "--model",
        "-m",
        help="Backend to configure (e.g. gpt4-o, openrouter, claude, ollama)",
    ),
) -> None:
    """Configure a backend and make it the default.

    'ollama' setup can install the Ollama CLI (with confirmation), start the
    local service and pull the selected model. Hosted backends ask for an
    API key and a model.
    """
    config = load_user_config()
    registry = load_registry()
    descriptor = resolve_descriptor(registry, config, backend, "Select a backend to set up:")

    typer.echo(f"Configuring backend: {descriptor.name}")
    try:
        settings = descriptor.setup(get_backend_settings(config, descriptor.name))
    except LLMError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    set_backend_settings(config, descriptor.name, settings)
    config.selected_backend = descriptor.name
    save_user_config(config)

    typer.echo()
    typer.echo(f"✓ Saved configuration for {descriptor.name}")
    typer.echo("You can now run 'gessage' in any git repository with staged changes.")
