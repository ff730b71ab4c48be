"""Ollama backend for local inference.

Talks to an Ollama server over its HTTP API. Setup can install the
Ollama CLI, start the local server and pull the model; teardown stops the
model and, on macOS, the Homebrew service.
"""

import logging
import shutil
import subprocess
import sys
from typing import Dict, Optional

import httpx
import typer

from gessage.config import TEMPERATURE, TRUNCATION_MARKER
from gessage.llm.base import GenerationContext, setting_float, setting_int
from gessage.llm.exceptions import (
    BackendConfigError,
    GenerationError,
    RequestRejectedError,
    RuntimeUnreachableError,
)
from gessage.llm.registry import BackendDescriptor
from gessage.sanitize import truncate_utf8
from gessage.ui import confirm, wait_until

logger = logging.getLogger(__name__)

BACKEND_NAME = "ollama"
DEFAULT_HOST = "http://localhost:11434"
DEFAULT_MODEL = "qwen2.5-coder:3b"
DEFAULT_TIMEOUT_SECONDS = 300.0
# Slightly under the usual server context limit
DEFAULT_MAX_PROMPT_BYTES = 3800
PROMPT_PREFIX = "Write a Conventional Commit message ONLY.\n"

PING_TIMEOUT_SECONDS = 2.0
SERVER_START_WAIT_SECONDS = 10.0
INSTALL_SCRIPT = "curl -fsSL https://ollama.com/install.sh | sh"


class OllamaGenerator:
    """Generator backed by an Ollama server."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        model: str = DEFAULT_MODEL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_prompt_bytes: int = DEFAULT_MAX_PROMPT_BYTES,
    ):
        self.host = host.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_prompt_bytes = max_prompt_bytes

    def build_request(self, prompt: str, max_tokens: int) -> dict:
        final_prompt = truncate_utf8(PROMPT_PREFIX + prompt, self.max_prompt_bytes, TRUNCATION_MARKER)
        return {
            "model": self.model,
            "prompt": final_prompt,
            "stream": False,
            "options": {
                "num_predict": max_tokens,
                "temperature": TEMPERATURE,
            },
        }

    def generate(self, ctx: GenerationContext, prompt: str, max_tokens: int) -> str:
        """Draft a commit message with Ollama's /api/generate endpoint.

        Args:
            ctx: Cancellation and timeout for this call.
            prompt: The rendered prompt. Clamped to max_prompt_bytes.
            max_tokens: Passed as num_predict.

        Returns:
            The "response" field. Empty when the server returned none.

        Raises:
            RuntimeUnreachableError: If the server cannot be reached.
            RequestRejectedError: If the server answers with a non-success status.
            GenerationError: For timeouts and undecodable responses.
        """
        timeout = ctx.bounded(self.timeout_seconds)
        url = f"{self.host}/api/generate"

        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.post(url, json=self.build_request(prompt, max_tokens))
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise RuntimeUnreachableError(
                f"Ollama is not reachable at {self.host} ({e}). Run 'gessage setup --backend ollama'."
            )
        except httpx.TimeoutException:
            raise GenerationError(f"Ollama request timed out after {timeout:g}s")
        except httpx.HTTPError as e:
            raise GenerationError(f"Ollama request failed: {e}")

        if not response.is_success:
            logger.debug("Ollama returned status %s: %s", response.status_code, response.text[:200])
            message = f"Ollama error: status {response.status_code}"
            if response.status_code == 404:
                message += f" (is the model pulled? try 'ollama pull {self.model}')"
            raise RequestRejectedError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise GenerationError("Ollama returned a response that is not JSON")

        if not isinstance(data, dict):
            raise GenerationError("Ollama returned an unexpected response")
        return str(data.get("response") or "")


def construct(settings: Dict[str, str]) -> OllamaGenerator:
    """Build the ollama backend from its settings map. Every key is optional."""
    return OllamaGenerator(
        host=(settings.get("host") or "").strip() or DEFAULT_HOST,
        model=(settings.get("model") or "").strip() or DEFAULT_MODEL,
        timeout_seconds=setting_float(settings, "timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
        max_prompt_bytes=setting_int(settings, "max_prompt_bytes", DEFAULT_MAX_PROMPT_BYTES),
    )


def is_localhost(host: str) -> bool:
    lowered = host.lower()
    return "localhost" in lowered or "127.0.0.1" in lowered


def ping(host: str, timeout: float = PING_TIMEOUT_SECONDS) -> bool:
    """Check whether an Ollama server answers on host.

    Returns:
        True for any status below 500.
    """
    try:
        response = httpx.get(f"{host.rstrip('/')}/api/tags", timeout=timeout)
    except httpx.HTTPError:
        return False
    return response.status_code < 500


def _run(args: list[str], **kwargs) -> bool:
    """Run a command attached to the terminal and report success."""
    logger.debug("Running: %s", " ".join(args))
    try:
        return subprocess.run(args, **kwargs).returncode == 0
    except OSError as e:
        logger.debug("Command %s failed to start: %s", args[0], e)
        return False


def _install_cli() -> None:
    typer.echo("Ollama CLI not found on your system.")
    if not confirm("Install Ollama now? This will run system commands"):
        raise BackendConfigError("ollama is required; aborting setup")

    installed = False
    if sys.platform == "darwin" and shutil.which("brew"):
        typer.echo("Installing via Homebrew: brew install ollama")
        installed = _run(["brew", "install", "ollama"])
        if not installed:
            typer.echo("brew install failed", err=True)

    if not installed:
        typer.echo(f"Installing via official script: {INSTALL_SCRIPT}")
        installed = _run(["/bin/sh", "-c", INSTALL_SCRIPT])

    if not installed or not shutil.which("ollama"):
        raise BackendConfigError("Ollama installation failed")


def _start_server(host: str) -> None:
    if not confirm("Ollama server not detected. Start it now?"):
        raise BackendConfigError(f"ollama server is not reachable at {host}")

    started = False
    if sys.platform == "darwin" and shutil.which("brew"):
        typer.echo("Starting via Homebrew services: brew services start ollama")
        started = _run(["brew", "services", "start", "ollama"])

    if not started:
        typer.echo("Starting 'ollama serve' in background...")
        try:
            subprocess.Popen(
                ["ollama", "serve"],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise BackendConfigError(f"could not start 'ollama serve': {e}")

    if not wait_until(lambda: ping(host), SERVER_START_WAIT_SECONDS):
        raise BackendConfigError(f"ollama server is not reachable at {host}")


def setup(current: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Prepare a local Ollama runtime and collect host and model.

    Raises:
        BackendConfigError: If installation, server start or model pull fails.
    """
    current = current or {}

    if not shutil.which("ollama"):
        _install_cli()

    host = typer.prompt("Ollama host", default=current.get("host") or DEFAULT_HOST).strip()
    model = typer.prompt("Model name", default=current.get("model") or DEFAULT_MODEL).strip()

    if is_localhost(host):
        if not ping(host):
            _start_server(host)

        if shutil.which("ollama"):
            if not _run(["ollama", "pull", model]):
                raise BackendConfigError(f"ollama pull {model!r} failed")
            if not _run(["ollama", "show", model], stdout=subprocess.DEVNULL):
                raise BackendConfigError(f"ollama model {model!r} not available after pull")

    settings = dict(current)
    settings.update({"host": host, "model": model})
    return settings


def teardown(settings: Dict[str, str]) -> None:
    """Stop the model and, on macOS, the Homebrew service. Local hosts only."""
    host = (settings.get("host") or "").strip() or DEFAULT_HOST
    model = (settings.get("model") or "").strip()

    if not is_localhost(host):
        typer.echo(f"Ollama at {host} is not local; nothing to stop.")
        return

    if model and shutil.which("ollama"):
        typer.echo(f"Stopping model {model}...")
        _run(["ollama", "stop", model])

    if sys.platform == "darwin" and shutil.which("brew"):
        typer.echo("Stopping Homebrew service: brew services stop ollama")
        _run(["brew", "services", "stop", "ollama"])


DESCRIPTOR = BackendDescriptor(
    name=BACKEND_NAME,
    construct=construct,
    setup=setup,
    teardown=teardown,
    description="Local Ollama runtime (no API key, large diffs)",
)
