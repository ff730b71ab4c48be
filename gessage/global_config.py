"""Global configuration management for gessage.

Handles user-level configuration stored in ~/.gessage/config.yaml:
- selected_backend: The backend used when no --backend flag is given
- backends: Per-backend settings maps (API keys, hosts, models, timeouts)

The settings maps are opaque string-to-string dictionaries. Only the backend
that owns a map interprets its keys.
"""

import os
import stat
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class GlobalConfigError(Exception):
    """Raised when there's an error with global configuration."""
    pass


_CONFIG_DIR = Path.home() / ".gessage"


@dataclass
class GessageConfig:
    """User configuration loaded from config.yaml."""

    selected_backend: Optional[str] = None
    backends: Dict[str, Dict[str, str]] = field(default_factory=dict)
    # Keys written by newer versions are carried through untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data["selected_backend"] = self.selected_backend
        data["backends"] = {name: dict(settings) for name, settings in self.backends.items()}
        return data


def get_global_config_dir() -> Path:
    """Get the global gessage configuration directory.

    Returns:
        Path to ~/.gessage/
    """
    return _CONFIG_DIR


def ensure_global_config_dir() -> Path:
    """Ensure the global config directory exists.

    Returns:
        Path to ~/.gessage/
    """
    config_dir = get_global_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_file_path() -> Path:
    """Get path to config.yaml file.

    Returns:
        Path to ~/.gessage/config.yaml
    """
    return get_global_config_dir() / "config.yaml"


def _coerce_settings(raw: Any) -> Dict[str, Dict[str, str]]:
    if not isinstance(raw, dict):
        return {}

    backends: Dict[str, Dict[str, str]] = {}
    for name, settings in raw.items():
        if not isinstance(settings, dict):
            continue
        backends[str(name)] = {
            str(key): "" if value is None else str(value)
            for key, value in settings.items()
        }
    return backends


def load_config() -> GessageConfig:
    """Load configuration from ~/.gessage/config.yaml.

    Returns:
        The parsed configuration. Empty configuration if the file doesn't exist.

    Raises:
        GlobalConfigError: If the file cannot be read or is not valid YAML.
    """
    config_file = get_config_file_path()

    if not config_file.exists():
        return GessageConfig()

    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise GlobalConfigError(f"Failed to load config from {config_file}: {e}")

    if not isinstance(data, dict):
        raise GlobalConfigError(f"Failed to load config from {config_file}: expected a mapping")

    selected = data.pop("selected_backend", None)
    backends = _coerce_settings(data.pop("backends", None))

    return GessageConfig(
        selected_backend=str(selected) if selected else None,
        backends=backends,
        extra=data,
    )


def save_config(config: GessageConfig) -> None:
    """Save configuration to ~/.gessage/config.yaml.

    The file is written to a temporary sibling first and then renamed over
    the old one, so a crash never leaves a half-written config behind. The
    file can contain API keys, so it is readable by the owner only.

    Args:
        config: Configuration to save.

    Raises:
        GlobalConfigError: If the file cannot be written.
    """
    config_dir = ensure_global_config_dir()
    config_file = get_config_file_path()

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".config-", suffix=".yaml", dir=config_dir)
        with os.fdopen(fd, "w") as f:
            yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
        os.chmod(tmp_path, stat.S_IRUSR | stat.S_IWUSR)
        os.replace(tmp_path, config_file)
        tmp_path = None
    except OSError as e:
        raise GlobalConfigError(f"Failed to save config to {config_file}: {e}")
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)


def get_backend_settings(config: GessageConfig, name: str) -> Dict[str, str]:
    """Get a copy of one backend's settings map.

    Args:
        config: The loaded configuration.
        name: Backend name.

    Returns:
        The settings map, or an empty dict if the backend has none.
    """
    return dict(config.backends.get(name, {}))


def set_backend_settings(config: GessageConfig, name: str, settings: Dict[str, str]) -> None:
    """Replace one backend's settings map in place."""
    config.backends[name] = {str(k): str(v) for k, v in settings.items()}
