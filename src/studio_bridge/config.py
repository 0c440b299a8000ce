"""Service configuration.

All settings come from STUDIO_BRIDGE_* environment variables with defaults
that match the Studio plugin (which always talks to 127.0.0.1:44755).

The Gemini API key is deliberately NOT part of Settings: it is read per
prompt request so a missing key fails that request rather than startup.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

STUDIO_PLUGIN_PORT = 44755
LONG_POLL_SECONDS = 15.0
API_KEY_ENV = "GEMINI_API_KEY"

DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

# Generation parameters sent with every prompt
GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 1,
    "topP": 1,
    "maxOutputTokens": 2048,
}


@dataclass
class Settings:
    """Runtime settings for the bridge service."""

    host: str = "127.0.0.1"
    port: int = STUDIO_PLUGIN_PORT
    long_poll_seconds: float = LONG_POLL_SECONDS

    model_id: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE
    request_timeout: float = 120.0
    max_continuations: int = 32
    code_tags: tuple[str, ...] = ("luau",)
    generation_config: dict = field(default_factory=lambda: dict(GENERATION_CONFIG))

    plugins_dir: Optional[Path] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from defaults plus STUDIO_BRIDGE_* overrides."""
        return _apply_env_overrides(cls())


LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _log_level(value: str) -> str:
    level = value.strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {value}")
    return level


def _apply_env_overrides(settings: Settings) -> Settings:
    """Apply STUDIO_BRIDGE_* environment variable overrides."""
    env_map = {
        "STUDIO_BRIDGE_HOST": ("host", str),
        "STUDIO_BRIDGE_PORT": ("port", int),
        "STUDIO_BRIDGE_LONG_POLL_SECONDS": ("long_poll_seconds", float),
        "STUDIO_BRIDGE_MODEL": ("model_id", str),
        "STUDIO_BRIDGE_API_BASE": ("api_base", str),
        "STUDIO_BRIDGE_REQUEST_TIMEOUT": ("request_timeout", float),
        "STUDIO_BRIDGE_MAX_CONTINUATIONS": ("max_continuations", int),
        "STUDIO_BRIDGE_PLUGINS_DIR": ("plugins_dir", Path),
        "STUDIO_BRIDGE_LOG_LEVEL": ("log_level", _log_level),
    }
    for env_key, (attr, convert) in env_map.items():
        val = os.getenv(env_key)
        if not val:
            continue
        try:
            setattr(settings, attr, convert(val))
        except ValueError:
            logger.warning(f"Ignoring invalid {env_key}={val!r}")

    tags = os.getenv("STUDIO_BRIDGE_CODE_TAGS")
    if tags:
        parsed = tuple(t.strip() for t in tags.split(",") if t.strip())
        if parsed:
            settings.code_tags = parsed

    return settings


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at process start."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
