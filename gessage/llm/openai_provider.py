"""OpenAI chat completions backend ("gpt4-o").

Also provides OpenAICompatibleGenerator, which the OpenRouter backend
reuses with a different base URL.
"""

import logging
from typing import Dict, Optional

import typer
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, OpenAI

from gessage.config import AVAILABLE_MODELS, TEMPERATURE
from gessage.llm.base import GenerationContext, get_api_key, setting_float
from gessage.llm.exceptions import BackendConfigError, GenerationError
from gessage.llm.registry import BackendDescriptor
from gessage.prompts import SYSTEM_PROMPT
from gessage.ui import select_option

logger = logging.getLogger(__name__)

BACKEND_NAME = "gpt4-o"
OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_TIMEOUT_SECONDS = 40.0


class OpenAICompatibleGenerator:
    """Generator for any OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = OPENAI_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        provider_name: str = "OpenAI",
        extra_headers: Optional[Dict[str, str]] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.provider_name = provider_name
        self.extra_headers = extra_headers or {}

    def generate(self, ctx: GenerationContext, prompt: str, max_tokens: int) -> str:
        """Draft a commit message with one chat completion.

        Args:
            ctx: Cancellation and timeout for this call.
            prompt: The rendered prompt.
            max_tokens: Completion token budget.

        Returns:
            The completion text. Empty when the API returned no content.

        Raises:
            GenerationError: For timeouts, connection failures, non-success
                statuses and malformed responses.
        """
        timeout = ctx.bounded(self.timeout_seconds)

        # Retries are disabled so the timeout is the real bound of the call
        client = OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=timeout,
            max_retries=0,
        )

        try:
            response = client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=TEMPERATURE,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                extra_headers=self.extra_headers or None,
            )
        except APITimeoutError:
            raise GenerationError(f"{self.provider_name} request timed out after {timeout:g}s")
        except APIConnectionError as e:
            raise GenerationError(f"{self.provider_name} request failed: {e}")
        except APIStatusError as e:
            logger.debug("%s returned status %s", self.provider_name, e.status_code)
            raise GenerationError(
                f"{self.provider_name} error: status {e.status_code}",
                status_code=e.status_code,
            )
        except (APIError, ValueError) as e:
            raise GenerationError(f"{self.provider_name} returned an unreadable response: {e}")

        choices = getattr(response, "choices", None)
        if not isinstance(choices, list) or not choices:
            raise GenerationError(f"{self.provider_name} returned no choices")

        message = getattr(choices[0], "message", None)
        if message is None:
            raise GenerationError(f"{self.provider_name} returned a choice without a message")

        content = getattr(message, "content", None)
        return content if isinstance(content, str) else ""


def construct(settings: Dict[str, str]) -> OpenAICompatibleGenerator:
    """Build the gpt4-o backend from its settings map.

    Raises:
        MissingAPIKeyError: If neither the settings nor OPENAI_API_KEY hold a key.
    """
    return OpenAICompatibleGenerator(
        api_key=get_api_key(settings, BACKEND_NAME, "OpenAI"),
        model=(settings.get("model") or "").strip() or DEFAULT_MODEL,
        base_url=(settings.get("base_url") or "").strip() or OPENAI_BASE_URL,
        timeout_seconds=setting_float(settings, "timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
    )


def setup(current: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Collect the API key and model for the gpt4-o backend."""
    current = current or {}
    settings = dict(current)

    typer.echo("Create an API key at https://platform.openai.com/api-keys")
    api_key = typer.prompt(
        "Enter your OpenAI API key",
        default=current.get("api_key") or "",
        hide_input=True,
        show_default=False,
    ).strip()
    if not api_key:
        raise BackendConfigError("an OpenAI API key is required")
    settings["api_key"] = api_key

    models = AVAILABLE_MODELS[BACKEND_NAME]
    current_model = current.get("model") or DEFAULT_MODEL
    default = models.index(current_model) if current_model in models else 0
    settings["model"] = models[select_option("Available models:", models, default)]
    return settings


def variants() -> list[str]:
    return list(AVAILABLE_MODELS[BACKEND_NAME])


DESCRIPTOR = BackendDescriptor(
    name=BACKEND_NAME,
    construct=construct,
    setup=setup,
    variants=variants,
    description="OpenAI hosted chat completions",
)
