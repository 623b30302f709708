"""Unit tests for provider selection, parsing and retry policy."""

from __future__ import annotations

import asyncio

import aiohttp
import pytest

from errors import LLMServiceError
from models.chat import LLMMessage
from services import llm_service as llm_module
from services.llm_service import LLMService


def make_service(**overrides) -> LLMService:
    config = {
        "provider": "openai",
        "defaultModel": "",
        "openai": {"apiKey": "sk-test", "model": "gpt-4o-mini"},
        "vllm": {"endpoint": "http://vllm:8000/", "model": "llama"},
        "ollama": {"host": "http://ollama:11434", "model": "qwen2.5:0.5b"},
        "llm": {"maxRetries": 3, "retryBaseDelay": 0.01},
    }
    config.update(overrides)
    return LLMService(config)


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    waits: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        waits.append(seconds)

    monkeypatch.setattr(llm_module.asyncio, "sleep", fake_sleep)
    return waits


@pytest.mark.parametrize(
    ("requested", "expected"),
    [
        (None, ("openai", "gpt-4o-mini")),
        ("", ("openai", "gpt-4o-mini")),
        ("gpt-4o", ("openai", "gpt-4o")),
        ("qwen2.5:0.5b", ("ollama", "qwen2.5:0.5b")),
        ("ollama/llama3", ("ollama", "llama3")),
    ],
)
def test_resolve_model(requested, expected) -> None:
    assert make_service().resolve_model(requested) == expected


def test_configured_default_model_wins_over_provider_model() -> None:
    service = make_service(defaultModel="ollama/codellama")
    assert service.resolve_model() == ("ollama", "codellama")


def test_missing_openai_key_is_reported() -> None:
    service = make_service(openai={"apiKey": "", "model": "gpt-4o-mini"})

    with pytest.raises(LLMServiceError, match="API key not configured"):
        service._endpoint("openai")  # noqa: SLF001


def test_vllm_endpoint_is_openai_compatible() -> None:
    url, headers = make_service(provider="vllm")._endpoint("vllm")  # noqa: SLF001

    assert url == "http://vllm:8000/v1/chat/completions"
    assert "Authorization" not in headers


def test_payloads_carry_messages() -> None:
    service = make_service()
    messages = [LLMMessage(role="system", content="s"), LLMMessage(role="user", content="u")]

    openai_payload = service._build_payload("openai", "gpt-4o-mini", messages, stream=True)  # noqa: SLF001
    ollama_payload = service._build_payload("ollama", "qwen2.5:0.5b", messages, stream=False)  # noqa: SLF001

    assert openai_payload["messages"] == [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}]
    assert openai_payload["stream"] is True
    assert ollama_payload["stream"] is False
    assert "options" in ollama_payload


def test_stream_line_parsers() -> None:
    service = make_service()

    assert service._parse_openai_stream_line('data: {"choices":[{"delta":{"content":"Hi"}}]}') == "Hi"  # noqa: SLF001
    assert service._parse_openai_stream_line("data: [DONE]") is None  # noqa: SLF001
    assert service._parse_openai_stream_line(": keep-alive") is None  # noqa: SLF001
    assert service._parse_ollama_stream_line('{"message":{"content":"Yo"},"done":false}') == "Yo"  # noqa: SLF001
    assert service._parse_ollama_stream_line('{"done":true}') is None  # noqa: SLF001
    with pytest.raises(LLMServiceError):
        service._parse_ollama_stream_line('{"error":"model not found"}')  # noqa: SLF001


def test_response_parsers() -> None:
    service = make_service()

    assert service._parse_openai_response({"choices": [{"message": {"content": "ok"}}]}) == "ok"  # noqa: SLF001
    assert service._parse_ollama_response({"message": {"content": "ok"}}) == "ok"  # noqa: SLF001
    with pytest.raises(LLMServiceError):
        service._parse_openai_response({"choices": []})  # noqa: SLF001


@pytest.mark.asyncio
async def test_retry_recovers_from_overload(no_sleep: list[float]) -> None:
    service = make_service()
    attempts = 0

    async def operation():
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise LLMServiceError("overloaded", upstream_status=503)
        return "ok"

    assert await service._retry_with_backoff(operation, "openai") == "ok"  # noqa: SLF001
    assert attempts == 3
    assert len(no_sleep) == 2
    assert no_sleep[1] > no_sleep[0]


@pytest.mark.asyncio
async def test_retry_gives_up_on_non_retryable_status(no_sleep: list[float]) -> None:
    service = make_service()

    async def operation():
        raise LLMServiceError("bad request", upstream_status=400)

    with pytest.raises(LLMServiceError, match="bad request"):
        await service._retry_with_backoff(operation, "openai")  # noqa: SLF001
    assert no_sleep == []


@pytest.mark.asyncio
async def test_retry_wraps_exhausted_network_errors(no_sleep: list[float]) -> None:
    service = make_service()

    async def operation():
        raise aiohttp.ClientConnectionError("refused")

    with pytest.raises(LLMServiceError, match="network error"):
        await service._retry_with_backoff(operation, "ollama")  # noqa: SLF001
    assert len(no_sleep) == 2


@pytest.mark.asyncio
async def test_retry_reports_timeouts(no_sleep: list[float]) -> None:
    service = make_service()

    async def operation():
        raise asyncio.TimeoutError

    with pytest.raises(LLMServiceError, match="timeout"):
        await service._retry_with_backoff(operation, "openai")  # noqa: SLF001


def test_stored_default_model_wins_over_configured_default() -> None:
    service = LLMService(
        {"provider": "openai", "defaultModel": "gpt-4o", "openai": {"model": "gpt-4o-mini"}},
        default_model="qwen2.5:0.5b",
    )

    assert service.resolve_model(None) == ("ollama", "qwen2.5:0.5b")
    assert service.resolve_model("gpt-4.1") == ("openai", "gpt-4.1")
