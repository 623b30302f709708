"""Chat mode API endpoints"""

from __future__ import annotations

import logging
from contextlib import aclosing

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sse_starlette.sse import EventSourceResponse

from models.chat import ChatRequest
from models.diff import ApplyDiffRequest, DiffOutcome, DiffProposal
from models.stream import ErrorEvent, encode_event
from services.assistant import AssistantService
from services.stream_protocol import ChatStream, guard_stream
from services.stream_registry import StreamRegistry

from .dependencies import get_assistant_service, get_stream_registry, get_stream_timeout

logger = logging.getLogger(__name__)

router = APIRouter()

# HTTP status of a single-shot response whose terminal event is an error
ERROR_STATUS = {"validation": 400, "protocol": 500, "timeout": 504}


def stream_events(
    stream: ChatStream,
    request: ChatRequest,
    assistant: AssistantService,
    timeout: float | None,
) -> EventSourceResponse:
    """SSE response with one data frame per accepted StreamResponse"""

    async def event_generator():
        async with aclosing(guard_stream(stream, assistant.respond(request), timeout)) as events:
            async for event in events:
                yield {"event": "message", "data": encode_event(event)}
        logger.info(
            "Chat stream %s completed (%s, %d chars)",
            stream.id, stream.terminal.type, len(stream.text),
        )

    return EventSourceResponse(event_generator(), headers={"X-Stream-Id": stream.id})


@router.post("")
async def chat(
    request: ChatRequest,
    registry: StreamRegistry = Depends(get_stream_registry),
    assistant: AssistantService = Depends(get_assistant_service),
    timeout: float | None = Depends(get_stream_timeout),
):
    """Answer a prompt; streams SSE frames when request.stream is set"""
    stream = registry.open()
    if request.stream:
        return stream_events(stream, request, assistant, timeout)

    async with aclosing(guard_stream(stream, assistant.respond(request), timeout)) as events:
        async for _event in events:
            pass

    result = stream.synthesize(model=request.model)
    status_code = 200
    if isinstance(result, ErrorEvent):
        status_code = ERROR_STATUS.get(result.reason, 502)
    return Response(
        content=encode_event(result),
        status_code=status_code,
        media_type="application/json",
        headers={"X-Stream-Id": stream.id},
    )


@router.post("/stream")
async def chat_stream(
    request: ChatRequest,
    registry: StreamRegistry = Depends(get_stream_registry),
    assistant: AssistantService = Depends(get_assistant_service),
    timeout: float | None = Depends(get_stream_timeout),
):
    """Send a chat message and always get a streaming response (SSE)"""
    stream = registry.open()
    if not request.stream:
        request = request.model_copy(update={"stream": True})
    return stream_events(stream, request, assistant, timeout)


@router.get(
    "/streams/{stream_id}/diffs",
    response_model=list[DiffProposal],
    response_model_exclude_none=True,
)
async def list_diffs(stream_id: str, registry: StreamRegistry = Depends(get_stream_registry)):
    """Proposals of a stream that are neither applied nor discarded"""
    return registry.get(stream_id).diffs.proposals()


@router.post(
    "/streams/{stream_id}/diffs/{diff_id}/apply",
    response_model=DiffOutcome,
    response_model_exclude_none=True,
)
async def apply_diff(
    stream_id: str,
    diff_id: str,
    body: ApplyDiffRequest,
    registry: StreamRegistry = Depends(get_stream_registry),
) -> DiffOutcome:
    """Apply a proposal to the content supplied by the editor"""
    return registry.get(stream_id).diffs.apply(diff_id, body.content)


@router.post(
    "/streams/{stream_id}/diffs/{diff_id}/discard",
    response_model=DiffOutcome,
    response_model_exclude_none=True,
)
async def discard_diff(
    stream_id: str,
    diff_id: str,
    registry: StreamRegistry = Depends(get_stream_registry),
) -> DiffOutcome:
    return registry.get(stream_id).diffs.discard(diff_id)


@router.delete("/streams/{stream_id}")
async def drop_stream(stream_id: str, registry: StreamRegistry = Depends(get_stream_registry)):
    """Cancel a stream if still open and forget its proposals"""
    stream = registry.remove(stream_id)
    return {"streamId": stream.id, "state": stream.state.value}
