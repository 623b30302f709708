"""
Assistant Service - Produce the raw event sequence answering one chat request
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from models.chat import ChatRequest
from models.stream import DiffEvent, DoneEvent, StreamResponse, TokenEvent
from services.diff_generator import DiffGenerator
from services.llm_service import LLMService
from services.prompt_builder import build_messages

logger = logging.getLogger(__name__)


class AssistantService:
    """Tokens first, then diffs extracted from the full answer, then done"""

    def __init__(self, llm_service: LLMService, diff_generator: DiffGenerator | None = None):
        self.llm_service = llm_service
        self.diff_generator = diff_generator or DiffGenerator()

    async def respond(self, request: ChatRequest) -> AsyncIterator[StreamResponse]:
        messages = build_messages(request)
        logger.info(
            "Answering prompt %r (model: %s, stream: %s)",
            request.prompt[:50], request.model or "default", request.stream,
        )

        full_response = ""
        if request.stream:
            async for chunk in self.llm_service.generate_response_stream(messages, request.model):
                full_response += chunk
                yield TokenEvent(content=chunk)
        else:
            full_response = await self.llm_service.generate_response(messages, request.model)
            if full_response:
                yield TokenEvent(content=full_response)

        for diff in self.diff_generator.extract_diffs(full_response, request.context):
            yield DiffEvent(diff=diff)

        yield DoneEvent()
