"""
LLM Service - Handles interactions with different LLM providers
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any

import aiohttp

from errors import LLMServiceError
from models.chat import LLMMessage

logger = logging.getLogger(__name__)

OLLAMA_PREFIX = "ollama/"


def is_ollama_model(model: str) -> bool:
    """Ollama tags look like "qwen2.5:0.5b" or carry an explicit prefix"""
    return ":" in model or model.startswith(OLLAMA_PREFIX)


class LLMService:
    """Service for interacting with various LLM providers"""

    RETRYABLE_STATUSES = (429, 503)

    def __init__(self, config: dict[str, Any], default_model: str | None = None):
        self.config = config
        self.default_model = default_model
        self.provider = config.get("provider", "openai")
        llm_cfg = config.get("llm", {})
        self.timeout_seconds = llm_cfg.get("timeoutSeconds", 60)
        self.stream_timeout_seconds = llm_cfg.get("streamTimeoutSeconds", 120)
        self.max_retries = llm_cfg.get("maxRetries", 3)
        self.retry_base_delay = llm_cfg.get("retryBaseDelay", 2.0)
        self.temperature = llm_cfg.get("temperature", 0.7)
        self.max_tokens = llm_cfg.get("maxTokens", 2000)

    # ========== Config Helpers ==========

    def resolve_model(self, requested: str | None = None) -> tuple[str, str]:
        """Pick (provider, model) for a request

        An empty request falls back to the stored default model, then to the
        configured defaultModel, then to the provider section's model.
        """
        model = requested or self.default_model or self.config.get("defaultModel") or ""
        if model and is_ollama_model(model):
            if model.startswith(OLLAMA_PREFIX):
                model = model[len(OLLAMA_PREFIX) :]
            return "ollama", model
        provider = self.provider
        if not model:
            model = self.config.get(provider, {}).get("model", "")
        if not model:
            raise LLMServiceError(f"No model configured for provider {provider}")
        return provider, model

    def _get_openai_config(self) -> tuple[str, dict[str, str]]:
        """Get OpenAI config: (url, headers). Raises if api_key missing."""
        cfg = self.config.get("openai", {})
        api_key = cfg.get("apiKey")
        if not api_key:
            raise LLMServiceError(
                "OpenAI API key not configured. Set it via /api/config or use Ollama models."
            )
        base_url = cfg.get("baseUrl", "https://api.openai.com/v1").rstrip("/")
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        return f"{base_url}/chat/completions", headers

    def _get_vllm_config(self) -> tuple[str, dict[str, str]]:
        """Get vLLM config: (url, headers)."""
        cfg = self.config.get("vllm", {})
        endpoint = cfg.get("endpoint", "http://localhost:8000").rstrip("/")
        headers = {"Content-Type": "application/json"}
        if cfg.get("apiKey"):
            headers["Authorization"] = f"Bearer {cfg['apiKey']}"
        return f"{endpoint}/v1/chat/completions", headers

    def _get_ollama_url(self) -> str:
        host = self.config.get("ollama", {}).get("host", "http://localhost:11434")
        return f"{host.rstrip('/')}/api/chat"

    def _endpoint(self, provider: str) -> tuple[str, dict[str, str] | None]:
        if provider == "openai":
            return self._get_openai_config()
        if provider == "vllm":
            return self._get_vllm_config()
        if provider == "ollama":
            return self._get_ollama_url(), None
        raise LLMServiceError(f"Unsupported provider: {provider}")

    # ========== Payload Builders ==========

    def _build_openai_payload(self, model: str, messages: list[LLMMessage], stream: bool) -> dict[str, Any]:
        """Build OpenAI-compatible request payload"""
        return {
            "model": model,
            "messages": [message.model_dump() for message in messages],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": stream,
        }

    def _build_ollama_payload(self, model: str, messages: list[LLMMessage], stream: bool) -> dict[str, Any]:
        """Build Ollama /api/chat payload"""
        return {
            "model": model,
            "messages": [message.model_dump() for message in messages],
            "stream": stream,
            "options": {"temperature": self.temperature, "num_predict": self.max_tokens},
        }

    def _build_payload(self, provider: str, model: str, messages: list[LLMMessage], stream: bool):
        if provider == "ollama":
            return self._build_ollama_payload(model, messages, stream)
        return self._build_openai_payload(model, messages, stream)

    async def _retry_with_backoff(self, operation, provider: str = "API"):
        """Execute operation with exponential backoff retry logic"""
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                return await operation()
            except asyncio.TimeoutError:
                if last_attempt:
                    raise LLMServiceError(f"{provider} request timeout after {self.max_retries} retries")
                wait_time = (2**attempt) * self.retry_base_delay
                logger.warning(
                    "%s request timeout. Retrying in %ss (attempt %d/%d)",
                    provider, wait_time, attempt + 1, self.max_retries,
                )
            except aiohttp.ClientError as e:
                if last_attempt:
                    raise LLMServiceError(f"{provider} network error: {e}") from e
                wait_time = (2**attempt) * self.retry_base_delay
                logger.warning(
                    "%s network error: %s. Retrying in %ss (attempt %d/%d)",
                    provider, e, wait_time, attempt + 1, self.max_retries,
                )
            except LLMServiceError as e:
                status = e.upstream_status
                if status not in self.RETRYABLE_STATUSES or last_attempt:
                    raise
                wait_time = (2**attempt) * self.retry_base_delay * (5 if status == 429 else 2)
                logger.warning(
                    "%s returned %s. Retrying in %ss (attempt %d/%d)",
                    provider, status, wait_time, attempt + 1, self.max_retries,
                )
            await asyncio.sleep(wait_time)

    @asynccontextmanager
    async def _request(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        timeout_seconds: float = 60,
        provider: str = "API",
    ):
        """Context manager for HTTP POST requests with automatic session cleanup"""
        timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, json=payload, headers=headers) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error("%s API error (%s): %s", provider, response.status, error_text)
                    raise LLMServiceError(
                        f"{provider} API error ({response.status}): {error_text}",
                        upstream_status=response.status,
                    )
                yield response

    async def _request_json(self, url, payload, headers, provider: str) -> dict[str, Any]:
        """Make request and return JSON response"""
        async with self._request(url, payload, headers, self.timeout_seconds, provider) as response:
            return await response.json()

    async def _stream_response(self, url, payload, headers, provider: str, line_parser):
        """Stream response and yield parsed content"""
        async with self._request(url, payload, headers, self.stream_timeout_seconds, provider) as response:
            async for line in response.content:
                line_text = line.decode("utf-8").strip()
                content = line_parser(line_text)
                if content:
                    yield content

    # ========== Response Parsers ==========

    def _parse_openai_response(self, data: dict[str, Any]) -> str:
        """Parse OpenAI-compatible response format"""
        if "choices" in data and len(data["choices"]) > 0:
            choice = data["choices"][0]
            if "message" in choice and "content" in choice["message"]:
                return choice["message"]["content"] or ""
            elif "text" in choice:
                return choice["text"]
        raise LLMServiceError("No valid response from API")

    def _parse_ollama_response(self, data: dict[str, Any]) -> str:
        message = data.get("message")
        if isinstance(message, dict) and "content" in message:
            return message["content"]
        raise LLMServiceError("No valid response from Ollama")

    def _parse_openai_stream_line(self, line_text: str) -> str | None:
        """Parse a single SSE line from an OpenAI-compatible stream"""
        if not line_text.startswith("data: "):
            return None
        data_str = line_text[6:]
        if data_str == "[DONE]":
            return None
        try:
            data = json.loads(data_str)
        except json.JSONDecodeError:
            return None
        if "choices" in data and len(data["choices"]) > 0:
            delta = data["choices"][0].get("delta", {})
            return delta.get("content") or None
        return None

    def _parse_ollama_stream_line(self, line_text: str) -> str | None:
        """Parse one NDJSON line from an Ollama stream"""
        if not line_text:
            return None
        try:
            data = json.loads(line_text)
        except json.JSONDecodeError:
            return None
        if data.get("error"):
            raise LLMServiceError(f"Ollama error: {data['error']}")
        message = data.get("message") or {}
        return message.get("content") or None

    # ========== Public API ==========

    async def generate_response(self, messages: list[LLMMessage], model: str | None = None) -> str:
        """Generate a complete response from the resolved provider"""
        provider, model_name = self.resolve_model(model)
        url, headers = self._endpoint(provider)
        payload = self._build_payload(provider, model_name, messages, stream=False)
        logger.info("Calling %s with model %s", provider, model_name)

        async def _execute_request():
            data = await self._request_json(url, payload, headers, provider)
            if provider == "ollama":
                return self._parse_ollama_response(data)
            return self._parse_openai_response(data)

        response_text = await self._retry_with_backoff(_execute_request, provider)
        logger.info("Received response from %s (length: %d chars)", model_name, len(response_text))
        return response_text

    async def generate_response_stream(self, messages: list[LLMMessage], model: str | None = None):
        """Generate a streaming response from the resolved provider"""
        provider, model_name = self.resolve_model(model)
        url, headers = self._endpoint(provider)
        payload = self._build_payload(provider, model_name, messages, stream=True)
        parser = self._parse_ollama_stream_line if provider == "ollama" else self._parse_openai_stream_line
        logger.info("Starting %s stream with model %s", provider, model_name)

        try:
            async for content in self._stream_response(url, payload, headers, provider, parser):
                yield content
        except aiohttp.ClientError as e:
            raise LLMServiceError(f"{provider} network error: {e}") from e
