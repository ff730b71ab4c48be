"""CLI command for choosing the default backend and model."""

from typing import Optional

import typer

from gessage.cli.utils import load_registry, load_user_config, resolve_descriptor, save_user_config
from gessage.global_config import get_backend_settings, set_backend_settings
from gessage.ui import select_option


def default_command(
    backend: Optional[str] = typer.Option(
        None,
        "--backend",
        "--model",
        "-m",
        help="Backend to make the default",
    ),
    version: Optional[str] = typer.Option(
        None,
        "--version",
        help="Model identifier to store for the backend (e.g. qwen/qwen3-coder:free)",
    ),
) -> None:
    """Set the default backend and the model it uses."""
    config = load_user_config()
    registry = load_registry()
    descriptor = resolve_descriptor(registry, config, backend, "Select the default backend:")

    settings = get_backend_settings(config, descriptor.name)
    current = settings.get("model", "")

    model = (version or "").strip()
    if not model:
        variants = descriptor.variants() if descriptor.variants else []
        if variants:
            default = variants.index(current) if current in variants else 0
            model = variants[select_option(f"Select a model for {descriptor.name}:", variants, default)]
        else:
            model = typer.prompt(
                f"Model for {descriptor.name}",
                default=current,
                show_default=bool(current),
            ).strip()

    if model:
        settings["model"] = model
    set_backend_settings(config, descriptor.name, settings)
    config.selected_backend = descriptor.name
    save_user_config(config)

    typer.echo(f"✓ Default backend: {descriptor.name}")
    if model:
        typer.echo(f"  Model: {model}")
