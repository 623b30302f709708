"""Stream event models - one tagged variant per event type"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter

from .chat import WireModel
from .diff import DiffProposal

ErrorReason = Literal["upstream", "validation", "protocol", "timeout", "cancelled"]


class TokenEvent(WireModel):
    """Incremental answer text"""

    type: Literal["token"] = "token"
    content: str


class DiffEvent(WireModel):
    """Proposed file change"""

    type: Literal["diff"] = "diff"
    diff: DiffProposal


class ErrorEvent(WireModel):
    """Terminal failure"""

    type: Literal["error"] = "error"
    error: str
    reason: ErrorReason | None = None


class DoneEvent(WireModel):
    """Terminal success

    Single-shot responses also carry the accumulated content and diffs.
    """

    type: Literal["done"] = "done"
    stream_id: str | None = None
    content: str | None = None
    diffs: list[DiffProposal] | None = None
    model: str | None = None


StreamResponse = Annotated[
    Union[TokenEvent, DiffEvent, ErrorEvent, DoneEvent],
    Field(discriminator="type"),
]

TERMINAL_TYPES = frozenset({"error", "done"})

stream_response_adapter: TypeAdapter[StreamResponse] = TypeAdapter(StreamResponse)


def is_terminal(event: StreamResponse) -> bool:
    return event.type in TERMINAL_TYPES


def parse_event(data: str | bytes) -> StreamResponse:
    """Decode one JSON frame into its event variant"""
    return stream_response_adapter.validate_json(data)


def encode_event(event: StreamResponse) -> str:
    """Encode an event as a camelCase JSON frame without empty fields"""
    return event.model_dump_json(by_alias=True, exclude_none=True)
