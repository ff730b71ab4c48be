"""Anthropic Claude backend ("claude")."""

import logging
from typing import Dict, Optional

import typer
from anthropic import Anthropic, APIConnectionError, APIError, APIStatusError, APITimeoutError

from gessage.config import AVAILABLE_MODELS
from gessage.llm.base import GenerationContext, get_api_key, setting_float
from gessage.llm.exceptions import BackendConfigError, GenerationError
from gessage.llm.registry import BackendDescriptor
from gessage.prompts import SYSTEM_PROMPT
from gessage.ui import select_option

logger = logging.getLogger(__name__)

BACKEND_NAME = "claude"
DEFAULT_MODEL = "claude-3-5-haiku-latest"
DEFAULT_TIMEOUT_SECONDS = 60.0


class AnthropicGenerator:
    """Generator backed by the Anthropic messages API."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds

    def generate(self, ctx: GenerationContext, prompt: str, max_tokens: int) -> str:
        """Draft a commit message using Anthropic Claude.

        Args:
            ctx: Cancellation and timeout for this call.
            prompt: The rendered prompt.
            max_tokens: Completion token budget.

        Returns:
            The text blocks of the reply joined together. Empty if there are none.

        Raises:
            GenerationError: For timeouts, connection failures, non-success
                statuses and malformed responses.
        """
        timeout = ctx.bounded(self.timeout_seconds)

        # Create the Anthropic client
        client = Anthropic(api_key=self.api_key, timeout=timeout, max_retries=0)

        try:
            message = client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except APITimeoutError:
            raise GenerationError(f"Anthropic request timed out after {timeout:g}s")
        except APIConnectionError as e:
            raise GenerationError(f"Anthropic request failed: {e}")
        except APIStatusError as e:
            logger.debug("Anthropic returned status %s", e.status_code)
            raise GenerationError(f"Anthropic error: status {e.status_code}", status_code=e.status_code)
        except (APIError, ValueError) as e:
            raise GenerationError(f"Anthropic returned an unreadable response: {e}")

        blocks = getattr(message, "content", None)
        if not isinstance(blocks, list):
            raise GenerationError("Anthropic returned an unexpected response")

        return "".join(
            block.text for block in blocks
            if getattr(block, "type", None) == "text" and isinstance(getattr(block, "text", None), str)
        )


def construct(settings: Dict[str, str]) -> AnthropicGenerator:
    """Build the claude backend from its settings map.

    Raises:
        MissingAPIKeyError: If neither the settings nor ANTHROPIC_API_KEY hold a key.
    """
    return AnthropicGenerator(
        api_key=get_api_key(settings, BACKEND_NAME, "Anthropic"),
        model=(settings.get("model") or "").strip() or DEFAULT_MODEL,
        timeout_seconds=setting_float(settings, "timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
    )


def variants() -> list[str]:
    return list(AVAILABLE_MODELS[BACKEND_NAME])


def setup(current: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Collect the API key and model for the claude backend."""
    current = current or {}
    settings = dict(current)

    api_key = typer.prompt(
        "Enter your Anthropic API key",
        default=current.get("api_key") or "",
        hide_input=True,
        show_default=False,
    ).strip()
    if not api_key:
        raise BackendConfigError("an Anthropic API key is required")
    settings["api_key"] = api_key

    models = variants()
    current_model = current.get("model") or DEFAULT_MODEL
    default = models.index(current_model) if current_model in models else 0
    settings["model"] = models[select_option("Available models:", models, default)]
    return settings


DESCRIPTOR = BackendDescriptor(
    name=BACKEND_NAME,
    construct=construct,
    setup=setup,
    variants=variants,
    description="Anthropic Claude",
)
