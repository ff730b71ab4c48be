"""CLI entry point for gessage.

This module provides the main CLI application that combines the default
commit flow with the setup, down and default subcommands.
"""

import typer

from gessage.cli.default import default_command
from gessage.cli.down import down_command
from gessage.cli.main import main_command
from gessage.cli.setup import setup_command

# Main application
app = typer.Typer(
    name="gessage",
    help="gessage: Conventional Commit messages from your staged git diff",
    add_completion=False,
)

# Add individual commands
app.command("setup")(setup_command)
app.command("down")(down_command)
app.command("default")(default_command)

# Set the main callback for default behavior (includes --version flag)
app.callback(invoke_without_command=True)(main_command)


__all__ = [
    "app",
    "default_command",
    "down_command",
    "main_command",
    "setup_command",
]
