"""Configuration API endpoints"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from errors import AssistantError
from models.chat import LLMMessage
from services.config_manager import ConfigManager
from services.llm_service import LLMService

router = APIRouter()

SECRET_SECTIONS = ("openai", "vllm")


class ConfigUpdateRequest(BaseModel):
    """Request to update configuration"""

    provider: str | None = None
    defaultModel: str | None = None
    openai: dict | None = None
    vllm: dict | None = None
    ollama: dict | None = None
    llm: dict | None = None
    stream: dict | None = None


class ConfigResponse(BaseModel):
    """Configuration response"""

    provider: str
    defaultModel: str
    environment: str
    openai: dict
    vllm: dict
    ollama: dict
    llm: dict
    stream: dict


class ValidateResponse(BaseModel):
    """Validation response"""

    valid: bool
    message: str
    provider: str


def mask_key(key: str) -> str:
    if not key:
        return ""
    if len(key) <= 8:
        return "*" * len(key)
    return key[:4] + "*" * (len(key) - 8) + key[-4:]


@router.get("", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Get current configuration with API keys masked"""
    config = ConfigManager.get_instance().get_config()

    for section in SECRET_SECTIONS:
        config[section]["apiKey"] = mask_key(config[section].get("apiKey", ""))

    return ConfigResponse(
        provider=config["provider"],
        defaultModel=config.get("defaultModel", ""),
        environment=config["environment"],
        openai=config["openai"],
        vllm=config["vllm"],
        ollama=config["ollama"],
        llm=config["llm"],
        stream=config["stream"],
    )


@router.put("")
async def update_config(request: ConfigUpdateRequest) -> dict[str, Any]:
    """Update configuration; nested sections merge key by key"""
    ConfigManager.get_instance().save_config(request.model_dump(exclude_none=True))
    return {"status": "success", "message": "Configuration updated"}


@router.post("/validate", response_model=ValidateResponse)
async def validate_config() -> ValidateResponse:
    """Validate current configuration by testing LLM connection"""
    config = ConfigManager.get_instance().get_config()
    llm_service = LLMService(config)

    try:
        provider, _model = llm_service.resolve_model()
        response = await llm_service.generate_response(
            [LLMMessage(role="user", content="Say 'OK' if you can hear me.")]
        )
    except AssistantError as e:
        return ValidateResponse(
            valid=False,
            message=f"Connection failed: {e.message}",
            provider=config.get("provider", ""),
        )

    if response:
        return ValidateResponse(valid=True, message=f"Successfully connected to {provider}", provider=provider)
    return ValidateResponse(valid=False, message="Received empty response from LLM", provider=provider)
