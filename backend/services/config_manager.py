"""
Configuration Manager - Handle backend settings persistence
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from errors import ValidationError

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "EDITOR_ASSISTANT_CONFIG_DIR"
ENVIRONMENT_ENV = "EDITOR_ASSISTANT_ENV"


class ConfigManager:
    """Manage configuration persistence"""

    _instance = None
    _config_file = None

    def __init__(self, config_dir: str | None = None):
        # 1. explicit argument, 2. environment variable, 3. ~/.editor_assistant
        config_dir = config_dir or os.environ.get(CONFIG_DIR_ENV) or os.path.expanduser("~/.editor_assistant")

        config_path = Path(config_dir)
        try:
            config_path.mkdir(parents=True, exist_ok=True)
            self._config_file = config_path / "config.json"
        except OSError as e:
            logger.warning("Cannot write to %s: %s", config_dir, e)
            tmp_dir = Path(tempfile.gettempdir()) / "editor_assistant"
            tmp_dir.mkdir(parents=True, exist_ok=True)
            self._config_file = tmp_dir / "config.json"
            logger.warning("Using temporary config path: %s", self._config_file)

        self._config = self._load_config()

    @classmethod
    def get_instance(cls) -> "ConfigManager":
        """Get singleton instance"""
        if cls._instance is None:
            cls._instance = ConfigManager()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        cls._instance = None

    @property
    def config_file(self) -> Path:
        return self._config_file

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file, layered over the defaults"""
        config = self._default_config()
        if self._config_file.exists():
            try:
                with open(self._config_file) as f:
                    stored = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                logger.error("Error loading config: %s", e)
            else:
                merge_config(config, stored)
                try:
                    check_stream_settings(config)
                except ValidationError as e:
                    logger.error("Ignoring stored stream settings: %s", e.message)
                    config["stream"] = self._default_config()["stream"]

        if os.environ.get(ENVIRONMENT_ENV):
            config["environment"] = os.environ[ENVIRONMENT_ENV]
        return config

    def _default_config(self) -> dict[str, Any]:
        """Get default configuration"""
        return {
            "provider": "openai",
            "defaultModel": "",
            "environment": "production",
            "logLevel": "INFO",
            "openai": {"apiKey": "", "model": "gpt-4o-mini", "baseUrl": "https://api.openai.com/v1"},
            "vllm": {
                "endpoint": "http://localhost:8000",
                "apiKey": "",
                "model": "meta-llama/Llama-2-7b-chat-hf",
            },
            "ollama": {"host": "http://localhost:11434", "model": "qwen2.5:0.5b"},
            "llm": {
                "timeoutSeconds": 60,
                "streamTimeoutSeconds": 120,
                "maxRetries": 3,
                "retryBaseDelay": 2.0,
                "temperature": 0.7,
                "maxTokens": 2000,
            },
            "stream": {"timeoutSeconds": 120, "maxStreams": 256},
            "database": {"path": str(self._config_file.parent / "assistant.db")},
            "server": {"host": "0.0.0.0", "port": 8000},
        }

    def get_config(self) -> dict[str, Any]:
        """Get current configuration"""
        # Reload config from file to ensure we have the latest
        self._config = self._load_config()
        return copy.deepcopy(self._config)

    def save_config(self, config: dict[str, Any]):
        """Save configuration to file"""
        candidate = merge_config(copy.deepcopy(self._config), config)
        check_stream_settings(candidate)
        self._config = candidate
        self._config_file.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self._config_file, "w") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            raise RuntimeError(f"Failed to save config: {e}") from e

    def get(self, key: str, default=None):
        """Get specific config value"""
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set specific config value"""
        self.save_config({key: value})

    def is_development(self) -> bool:
        return str(self._config.get("environment", "")).lower() == "development"


def merge_config(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """Merge update into base in place; nested sections merge key by key"""
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_config(base[key], value)
        else:
            base[key] = value
    return base


def check_stream_settings(config: dict[str, Any]) -> None:
    """Stream limits must be positive; a missing timeoutSeconds disables the deadline"""
    stream = config.get("stream") or {}
    if not isinstance(stream, dict):
        raise ValidationError("stream settings must be an object")
    for key in ("timeoutSeconds", "maxStreams"):
        value = stream.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValidationError(f"stream.{key} must be a positive number, got {value!r}")


def configure_logging(log_level: str) -> None:
    """Configure process-wide logging for the backend."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
