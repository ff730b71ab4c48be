"""Commit message pipeline.

Turns a staged diff into a first proposal:

    diff -> redact -> truncate -> select backend -> prompt
         -> generate -> normalize (or fall back to diff statistics)

The registry is passed in, so tests can run the pipeline against fake
backends without touching the bundled ones.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from gessage.config import (
    ALLOWED_TYPES,
    DEFAULT_MAX_BYTES,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TYPE,
    MAX_BODY_LINE_LEN,
    MAX_TITLE_LEN,
    TRUNCATION_MARKER,
)
from gessage.fallback import fallback_from_diff
from gessage.formatters import CommitMessage
from gessage.git.exceptions import NoStagedChangesError
from gessage.global_config import GessageConfig, get_backend_settings
from gessage.llm.base import GenerationContext, Generator
from gessage.llm.exceptions import BackendConfigError, GenerationCancelledError, LLMError
from gessage.llm.registry import BackendRegistry
from gessage.llm.selector import DEFAULT_POLICY, SelectionPolicy, select_backend
from gessage.normalize import NormalizeOptions, normalize_message
from gessage.prompts import PromptSpec, build_prompt
from gessage.sanitize import RedactionResult, redact, truncate_utf8

logger = logging.getLogger(__name__)


@dataclass
class PipelineOptions:
    """Per-run settings, mostly straight from the command line."""

    backend: Optional[str] = None
    auto: bool = True
    type_hint: Optional[str] = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    max_bytes: int = DEFAULT_MAX_BYTES
    max_title_len: int = MAX_TITLE_LEN
    max_body_line_len: int = MAX_BODY_LINE_LEN
    allowed_types: tuple[str, ...] = ALLOWED_TYPES
    policy: SelectionPolicy = field(default=DEFAULT_POLICY)

    def normalize_options(self) -> NormalizeOptions:
        return NormalizeOptions(
            max_title_len=self.max_title_len,
            max_body_line_len=self.max_body_line_len,
            allowed_types=self.allowed_types,
            default_type=self.type_hint or DEFAULT_TYPE,
        )


@dataclass(frozen=True)
class PreparedRun:
    """Everything known about a run before any backend is contacted."""

    diff: str
    redaction: RedactionResult
    sanitized_diff: str
    backend: str
    prompt: str


@dataclass(frozen=True)
class Proposal:
    """The first proposed message and how it was obtained."""

    message: CommitMessage
    used_fallback: bool = False
    notice: Optional[str] = None


class CommitPipeline:
    """Builds the first commit message proposal for a staged diff.

    Args:
        registry: Backends available to this run.
        config: Loaded user configuration.
        options: Per-run settings.
    """

    def __init__(
        self,
        registry: BackendRegistry,
        config: Optional[GessageConfig] = None,
        options: Optional[PipelineOptions] = None,
    ):
        self.registry = registry
        self.config = config or GessageConfig()
        self.options = options or PipelineOptions()
        self.normalize_options = self.options.normalize_options()

    def resolve_backend(self, sanitized_size: int) -> str:
        """Pick the backend name for this run.

        The --backend flag wins, then the configured default. Without either,
        auto-selection picks by size.

        Raises:
            BackendConfigError: If no backend is named and auto-selection is off.
        """
        explicit = self.options.backend or self.config.selected_backend
        if not self.options.auto:
            if not explicit:
                raise BackendConfigError(
                    "No backend selected. Run 'gessage setup' or pass --backend."
                )
            return explicit

        name = select_backend(explicit, sanitized_size, self.options.policy)
        logger.debug("Selected backend %r for %d byte(s) of sanitized diff", name, sanitized_size)
        return name

    def prepare(self, diff: str) -> PreparedRun:
        """Sanitize the diff, pick a backend and render the prompt.

        Args:
            diff: The raw staged diff.

        Returns:
            The PreparedRun. No backend has been constructed yet.

        Raises:
            NoStagedChangesError: If the diff is blank.
            BackendConfigError: If no backend can be chosen.
        """
        if not diff or not diff.strip():
            raise NoStagedChangesError("No staged changes. Use `git add` first.")

        redaction = redact(diff)
        sanitized = truncate_utf8(redaction.text, self.options.max_bytes, TRUNCATION_MARKER)
        if sanitized != redaction.text:
            logger.debug("Sanitized diff truncated to %d bytes", self.options.max_bytes)

        backend = self.resolve_backend(len(sanitized.encode("utf-8")))
        prompt = build_prompt(
            PromptSpec(
                diff=sanitized,
                allowed_types=self.options.allowed_types,
                max_title_len=self.options.max_title_len,
                max_body_line_len=self.options.max_body_line_len,
                type_hint=self.options.type_hint,
            )
        )
        return PreparedRun(
            diff=diff,
            redaction=redaction,
            sanitized_diff=sanitized,
            backend=backend,
            prompt=prompt,
        )

    def create_generator(self, run: PreparedRun) -> Generator:
        """Build the run's backend from its stored settings.

        Raises:
            UnknownBackendError: If the backend is not registered.
            BackendConfigError: If its settings are unusable.
        """
        settings = get_backend_settings(self.config, run.backend)
        return self.registry.create(run.backend, settings)

    def propose(self, run: PreparedRun, generator: Generator, ctx: GenerationContext) -> Proposal:
        """Make the first generation attempt.

        A failed or blank attempt falls back to a message built from diff
        statistics, so this always returns a proposal.

        Args:
            run: The prepared run.
            generator: The run's backend.
            ctx: Cancellation and timeout for the call.

        Returns:
            The first Proposal.
        """
        try:
            raw = generator.generate(ctx, run.prompt, self.options.max_tokens)
        except GenerationCancelledError:
            raise
        except LLMError as e:
            logger.debug("Generation failed: %s", e)
            return self.fallback(run, f"Generation failed ({e}); using a message built from the diff.")

        if not raw or not raw.strip():
            return self.fallback(run, "Backend returned no text; using a message built from the diff.")

        return Proposal(message=normalize_message(raw, self.normalize_options))

    def fallback(self, run: PreparedRun, notice: str) -> Proposal:
        message = fallback_from_diff(run.diff, self.options.max_title_len)
        return Proposal(message=message, used_fallback=True, notice=notice)
