"""Optional run settings: prompt defaults and timing knobs from a YAML file."""

import logging
import os
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HOSTDEPLOY_CONFIG"
DEFAULT_CONFIG_FILE = "hostdeploy.yaml"

_DEFAULT_KEYS = {"repo_url", "branch", "ssh_user", "server", "ssh_key", "app_port"}

DEFAULT_SETTLE_INTERVAL = 5
DEFAULT_EXTERNAL_PROBE_DELAY = 3
DEFAULT_CONNECT_TIMEOUT = 10


@dataclass
class Settings:
    """Run settings. Never holds the access token."""

    defaults: dict = field(default_factory=dict)
    log_dir: str = "."
    settle_interval: float = DEFAULT_SETTLE_INTERVAL
    external_probe_delay: float = DEFAULT_EXTERNAL_PROBE_DELAY
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    max_prompt_attempts: int = 3

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        unknown = set(data) - {"defaults", "log_dir", "settle_interval", "external_probe_delay",
                               "connect_timeout", "max_prompt_attempts"}
        if unknown:
            raise ValueError(f"Unknown settings key(s): {', '.join(sorted(unknown))}")

        defaults = data.get("defaults") or {}
        if not isinstance(defaults, dict):
            raise ValueError("'defaults' must be a mapping")
        bad = set(defaults) - _DEFAULT_KEYS
        if bad:
            raise ValueError(f"Unknown prompt default(s): {', '.join(sorted(bad))}")

        settings = cls(defaults={k: str(v) for k, v in defaults.items() if v is not None})
        if "log_dir" in data:
            settings.log_dir = str(data["log_dir"])
        for key in ("settle_interval", "external_probe_delay"):
            if key in data:
                value = data[key]
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                    raise ValueError(f"'{key}' must be a non-negative number")
                setattr(settings, key, value)
        for key in ("connect_timeout", "max_prompt_attempts"):
            if key in data:
                value = data[key]
                if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                    raise ValueError(f"'{key}' must be a positive integer")
                setattr(settings, key, value)
        return settings


def resolve_config_path(path: str | None = None) -> str | None:
    """Explicit path, then $HOSTDEPLOY_CONFIG, then ./hostdeploy.yaml if present."""
    if path:
        return path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return env_path
    if os.path.isfile(DEFAULT_CONFIG_FILE):
        return DEFAULT_CONFIG_FILE
    return None


def load_settings(path: str | None = None) -> Settings:
    """Load settings from YAML, or return defaults when no file is configured."""
    config_path = resolve_config_path(path)
    if config_path is None:
        return Settings()

    config_path = os.path.expanduser(config_path)
    if not os.path.isfile(config_path):
        raise FileNotFoundError(f"Settings file not found: {config_path}")

    with open(config_path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing settings file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Settings file {config_path} must contain a mapping")

    logger.debug(f"Loaded settings from {config_path}")
    return Settings.from_dict(data)
