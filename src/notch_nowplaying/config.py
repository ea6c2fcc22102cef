"""
Persistent configuration for the now-playing client.

Persists to JSON at ~/.notch_nowplaying/config.json (overridable via the
NOTCH_NOWPLAYING_CONFIG env var or --config CLI arg).
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from .adapter.protocol import DEFAULT_DEBOUNCE_MS, DEFAULT_MAX_BUFFER

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = os.path.expanduser("~/.notch_nowplaying")
DEFAULT_CONFIG_PATH = os.path.join(DEFAULT_CONFIG_DIR, "config.json")
DEFAULT_INTERPRETER = "/usr/bin/perl"


@dataclass
class ClientConfig:
    interpreter: str = DEFAULT_INTERPRETER
    adapter_script: Optional[str] = None  # None = ~/.notch_nowplaying/adapter/
    framework_path: Optional[str] = None
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    command_timeout: Optional[float] = 10.0
    stop_timeout: float = 5.0
    max_line_buffer: Optional[int] = DEFAULT_MAX_BUFFER
    max_restarts: int = 0

    def to_dict(self) -> dict:
        return {
            "interpreter": self.interpreter,
            "adapter_script": self.adapter_script,
            "framework_path": self.framework_path,
            "debounce_ms": self.debounce_ms,
            "command_timeout": self.command_timeout,
            "stop_timeout": self.stop_timeout,
            "max_line_buffer": self.max_line_buffer,
            "max_restarts": self.max_restarts,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClientConfig":
        defaults = cls()
        return cls(
            interpreter=data.get("interpreter", defaults.interpreter),
            adapter_script=data.get("adapter_script"),
            framework_path=data.get("framework_path"),
            debounce_ms=int(data.get("debounce_ms", defaults.debounce_ms)),
            command_timeout=data.get("command_timeout", defaults.command_timeout),
            stop_timeout=float(data.get("stop_timeout", defaults.stop_timeout)),
            max_line_buffer=data.get("max_line_buffer", defaults.max_line_buffer),
            max_restarts=int(data.get("max_restarts", defaults.max_restarts)),
        )


def get_config_path() -> str:
    """Resolve config file path from env var or default."""
    return os.environ.get("NOTCH_NOWPLAYING_CONFIG", DEFAULT_CONFIG_PATH)


def load_config(path: Optional[str] = None) -> ClientConfig:
    """
    Load config from JSON file.

    Returns a default ClientConfig if the file doesn't exist or is invalid.
    """
    path = path or get_config_path()
    if not os.path.exists(path):
        logger.info("No config file at %s, using defaults", path)
        return ClientConfig()
    try:
        with open(path, "r") as f:
            data = json.load(f)
        logger.info("Loaded config from %s", path)
        return ClientConfig.from_dict(data)
    except Exception as e:
        logger.warning("Failed to load config from %s: %s, using defaults", path, e)
        return ClientConfig()


def save_config(config: ClientConfig, path: Optional[str] = None) -> None:
    """Persist config to JSON file, creating parent directories as needed."""
    path = path or get_config_path()
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)
    logger.info("Config saved to %s", path)
