"""Tests for configuration persistence and the config endpoints."""

from __future__ import annotations

import json

import pytest

from services.config_manager import ConfigManager, merge_config


def test_defaults_are_used_without_a_config_file(config_dir) -> None:
    config = ConfigManager.get_instance().get_config()

    assert config["provider"] == "openai"
    assert config["stream"]["timeoutSeconds"] == 120
    assert config["database"]["path"].startswith(str(config_dir))


def test_stored_sections_merge_over_defaults(config_dir) -> None:
    (config_dir / "config.json").write_text(json.dumps({"ollama": {"model": "llama3"}}))

    config = ConfigManager.get_instance().get_config()

    assert config["ollama"] == {"host": "http://localhost:11434", "model": "llama3"}


def test_corrupt_config_falls_back_to_defaults(config_dir) -> None:
    (config_dir / "config.json").write_text("{not json")

    assert ConfigManager.get_instance().get_config()["provider"] == "openai"


def test_environment_variable_selects_development(config_dir, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EDITOR_ASSISTANT_ENV", "development")

    assert ConfigManager().is_development() is True


def test_save_config_persists_partial_update(config_dir) -> None:
    manager = ConfigManager.get_instance()
    manager.save_config({"openai": {"apiKey": "sk-123"}})

    stored = json.loads((config_dir / "config.json").read_text())
    assert stored["openai"]["apiKey"] == "sk-123"
    assert stored["openai"]["model"] == "gpt-4o-mini"


def test_merge_config_is_recursive() -> None:
    base = {"a": {"x": 1, "y": 2}, "b": 1}
    assert merge_config(base, {"a": {"y": 3}, "c": 4}) == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}


def test_get_config_endpoint_masks_keys(client) -> None:
    ConfigManager.get_instance().save_config({"openai": {"apiKey": "sk-abcdefghijkl"}})

    response = client.get("/api/config")

    assert response.status_code == 200
    assert response.json()["openai"]["apiKey"] == "sk-a*******ijkl"


def test_put_config_endpoint_updates_sections(client) -> None:
    response = client.put("/api/config", json={"provider": "vllm", "stream": {"timeoutSeconds": 30}})

    assert response.status_code == 200
    config = ConfigManager.get_instance().get_config()
    assert config["provider"] == "vllm"
    assert config["stream"] == {"timeoutSeconds": 30, "maxStreams": 256}


def test_non_positive_stream_timeout_is_rejected(client) -> None:
    response = client.put("/api/config", json={"stream": {"timeoutSeconds": 0}})

    assert response.status_code == 400
    assert "timeoutSeconds" in response.json()["error"]
    assert ConfigManager.get_instance().get_config()["stream"]["timeoutSeconds"] == 120


def test_stored_non_positive_stream_settings_fall_back_to_defaults(config_dir) -> None:
    (config_dir / "config.json").write_text(json.dumps({"stream": {"timeoutSeconds": -5, "maxStreams": 10}}))

    config = ConfigManager.get_instance().get_config()

    assert config["stream"] == {"timeoutSeconds": 120, "maxStreams": 256}
