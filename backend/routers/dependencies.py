"""Shared FastAPI dependencies"""

from __future__ import annotations

from typing import Any

from fastapi import Depends, Request

from services.assistant import AssistantService
from services.config_manager import ConfigManager
from services.entity_store import EntityStore
from services.llm_service import LLMService
from services.stream_registry import StreamRegistry


def get_config() -> dict[str, Any]:
    return ConfigManager.get_instance().get_config()


def get_stream_timeout(config: dict[str, Any] = Depends(get_config)) -> float | None:
    return config.get("stream", {}).get("timeoutSeconds")


def get_stream_registry(request: Request) -> StreamRegistry:
    return request.app.state.stream_registry


def get_entity_store(request: Request) -> EntityStore:
    return request.app.state.entity_store


def get_assistant_service(
    config: dict[str, Any] = Depends(get_config),
    store: EntityStore = Depends(get_entity_store),
) -> AssistantService:
    return AssistantService(LLMService(config, default_model=store.get_default_model()))
