"""Defaults for gessage.

User settings (selected backend, per-backend settings) live in
~/.gessage/config.yaml and are handled by gessage.global_config.
Use 'gessage setup' and 'gessage default' to modify them.
"""

# ============================================================
# CONVENTIONAL COMMIT GRAMMAR
# ============================================================

ALLOWED_TYPES = (
    "feat",
    "fix",
    "refactor",
    "docs",
    "chore",
    "style",
    "test",
    "perf",
)

DEFAULT_TYPE = "chore"

MAX_TITLE_LEN = 72
MAX_BODY_LINE_LEN = 100


# ============================================================
# GENERATION DEFAULTS
# ============================================================

DEFAULT_MAX_TOKENS = 512
DEFAULT_MAX_BYTES = 100_000
TEMPERATURE = 0.2

TRUNCATION_MARKER = "\n... [TRUNCATED]\n"


# ============================================================
# BACKEND SELECTION
# ============================================================
# Sanitized diffs at or below the threshold go to the hosted backend,
# larger ones to the local runtime.

SELECTION_THRESHOLD_BYTES = 20_000
SMALL_DIFF_BACKEND = "gpt4-o"
LARGE_DIFF_BACKEND = "ollama"


# ============================================================
# HOSTED BACKENDS
# ============================================================

AVAILABLE_MODELS = {
    "gpt4-o": [
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4.1",
        "gpt-4.1-mini",
    ],
    "claude": [
        "claude-3-5-haiku-latest",
        "claude-3-5-sonnet-latest",
        "claude-sonnet-4-20250514",
    ],
    "openrouter": [
        "qwen/qwen3-coder:free",
        "qwen/qwen3-235b-a22b:free",
        "deepseek/deepseek-r1:free",
    ],
}

API_KEY_ENV_VARS = {
    "gpt4-o": "OPENAI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


def get_api_key_env_var(backend: str) -> str | None:
    """Get the environment variable consulted for a backend's API key.

    Args:
        backend: The backend name.

    Returns:
        The environment variable name, or None for backends without keys.
    """
    return API_KEY_ENV_VARS.get(backend)
