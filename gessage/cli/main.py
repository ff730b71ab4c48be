"""Main CLI command for generating commit messages."""

from typing import Optional

import typer

from gessage import __version__
from gessage.approval import ApprovalLoop, Cancelled, Committed, Failed
from gessage.cli.utils import load_registry, load_user_config
from gessage.config import ALLOWED_TYPES, DEFAULT_MAX_BYTES, DEFAULT_MAX_TOKENS
from gessage.editor import edit_in_editor
from gessage.git import CommitError, GitError, commit_with_message, get_staged_diff
from gessage.llm import (
    BackendConfigError,
    GenerationContext,
    LLMError,
)
from gessage.log import setup_logging
from gessage.pipeline import CommitPipeline, PipelineOptions
from gessage.ui import read_choice, spinner


def _validate_type(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in ALLOWED_TYPES:
        raise typer.BadParameter(f"must be one of: {', '.join(ALLOWED_TYPES)}")
    return normalized


def main_command(
    ctx: typer.Context,
    backend: Optional[str] = typer.Option(
        None,
        "--backend",
        "--model",
        "-m",
        help="Backend to use (e.g. gpt4-o, openrouter, claude, ollama)",
    ),
    auto: bool = typer.Option(
        True,
        "--auto/--no-auto",
        help="Auto-select a backend by diff size when none is named",
    ),
    commit_type: Optional[str] = typer.Option(
        None,
        "--type",
        "-t",
        callback=_validate_type,
        help=f"Conventional commit type hint ({', '.join(ALLOWED_TYPES)})",
    ),
    no_commit: bool = typer.Option(
        False,
        "--no-commit",
        help="Do not run 'git commit'; just print the approved message",
    ),
    max_tokens: int = typer.Option(
        DEFAULT_MAX_TOKENS,
        "--max-tokens",
        min=1,
        help="Max tokens for generation",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Print the sanitized diff and prompt; do not call a backend",
    ),
    max_bytes: int = typer.Option(
        DEFAULT_MAX_BYTES,
        "--max-bytes",
        min=1,
        help="Max diff bytes sent to the backend after sanitization",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        min=0.1,
        help="Upper bound in seconds for each generation call",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Show debug logs on stderr",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show the version and exit",
    ),
) -> None:
    """Generate a Conventional Commit message from staged changes."""
    setup_logging(debug)

    if version:
        typer.echo(f"gessage {__version__}")
        raise typer.Exit(0)

    # If a subcommand is invoked, don't run the default behavior
    if ctx.invoked_subcommand is not None:
        return

    config = load_user_config()
    pipeline = CommitPipeline(
        load_registry(),
        config,
        PipelineOptions(
            backend=backend,
            auto=auto,
            type_hint=commit_type,
            max_tokens=max_tokens,
            max_bytes=max_bytes,
        ),
    )
    generation_ctx = GenerationContext(timeout=timeout)

    try:
        # Step 1: Read and sanitize the staged diff
        run = pipeline.prepare(get_staged_diff())
        if run.redaction.redacted_count:
            typer.echo(
                f"Redacted {run.redaction.redacted_count} potential secret(s) from the diff.",
                err=True,
            )

        if dry_run:
            typer.echo(f"Backend: {run.backend}", err=True)
            typer.echo("=== [SANITIZED DIFF] ===")
            typer.echo(run.sanitized_diff)
            typer.echo("\n=== [PROMPT] ===")
            typer.echo(run.prompt)
            raise typer.Exit(0)

        # Step 2: Build the backend and make the first attempt
        typer.echo(f"Using backend: {run.backend}", err=True)
        generator = pipeline.create_generator(run)
        with spinner(f"Generating with {run.backend}"):
            proposal = pipeline.propose(run, generator, generation_ctx)

        # Step 3: Let the user approve, edit, regenerate or cancel
        loop = ApprovalLoop(
            generator,
            run.prompt,
            generation_ctx,
            read_choice=read_choice,
            edit=edit_in_editor,
            commit=commit_with_message,
            options=pipeline.normalize_options,
            max_tokens=max_tokens,
            no_commit=no_commit,
        )
        state = loop.run(proposal.message, notice=proposal.notice)

    except KeyboardInterrupt:
        generation_ctx.cancel()
        typer.echo("\nInterrupted.", err=True)
        raise typer.Exit(130)
    except BackendConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        typer.echo("Run 'gessage setup' to configure a backend.", err=True)
        raise typer.Exit(1)
    except (LLMError, GitError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if isinstance(state, Committed):
        if state.committed:
            typer.echo("✓ Committed.", err=True)
        return

    if isinstance(state, Cancelled):
        typer.echo("Cancelled by user.", err=True)
        raise typer.Exit(1)

    if isinstance(state, Failed):
        typer.echo(f"Error: {state.error}", err=True)
        if isinstance(state.error, CommitError):
            typer.echo("Your message was not lost:", err=True)
            typer.echo(state.error.commit_message)
        raise typer.Exit(1)
