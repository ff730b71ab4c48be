"""OpenRouter backend.

OpenRouter exposes many hosted models, several of them free, behind an
OpenAI-compatible API.
"""

from typing import Dict, Optional

import typer

from gessage.config import AVAILABLE_MODELS
from gessage.llm.base import get_api_key, setting_float
from gessage.llm.exceptions import BackendConfigError, MissingAPIKeyError
from gessage.llm.openai_provider import OpenAICompatibleGenerator
from gessage.llm.registry import BackendDescriptor
from gessage.ui import select_option

BACKEND_NAME = "openrouter"
# OpenRouter API base URL
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_KEYS_URL = "https://openrouter.ai/settings/keys"
DEFAULT_MODEL = "qwen/qwen3-coder:free"
DEFAULT_TIMEOUT_SECONDS = 60.0


def construct(settings: Dict[str, str]) -> OpenAICompatibleGenerator:
    """Build the OpenRouter backend from its settings map.

    Raises:
        MissingAPIKeyError: If neither the settings nor OPENROUTER_API_KEY hold a key.
    """
    try:
        api_key = get_api_key(settings, BACKEND_NAME, "OpenRouter")
    except MissingAPIKeyError as e:
        raise MissingAPIKeyError(f"{e}\nCreate a free key at {OPENROUTER_KEYS_URL}")

    return OpenAICompatibleGenerator(
        api_key=api_key,
        model=(settings.get("model") or "").strip() or DEFAULT_MODEL,
        base_url=OPENROUTER_BASE_URL,
        timeout_seconds=setting_float(settings, "timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
        provider_name="OpenRouter",
        extra_headers={
            "HTTP-Referer": "https://github.com/gessage",
            "X-Title": "gessage",
        },
    )


def variants() -> list[str]:
    return list(AVAILABLE_MODELS[BACKEND_NAME])


def setup(current: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Collect the API key and default model for OpenRouter."""
    current = current or {}
    settings = dict(current)

    typer.echo("OpenRouter setup")
    typer.echo(f"1) Visit {OPENROUTER_KEYS_URL} and create a free API key.")
    typer.echo("2) Paste your key below. It is stored in ~/.gessage/config.yaml.")
    api_key = typer.prompt(
        "OpenRouter API key",
        default=current.get("api_key") or "",
        hide_input=True,
        show_default=False,
    ).strip()
    if not api_key:
        raise BackendConfigError("an OpenRouter API key is required")
    settings["api_key"] = api_key

    models = variants()
    current_model = current.get("model") or DEFAULT_MODEL
    default = models.index(current_model) if current_model in models else 0
    settings["model"] = models[select_option("Select a default OpenRouter model:", models, default)]
    return settings


DESCRIPTOR = BackendDescriptor(
    name=BACKEND_NAME,
    construct=construct,
    setup=setup,
    variants=variants,
    description="OpenRouter (free community models)",
)
