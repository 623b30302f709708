"""Models module - Pydantic data models"""

from .chat import (
    ActiveFile,
    ChatContext,
    ChatRequest,
    Diagnostic,
    DiagnosticSeverity,
    LLMMessage,
    OpenFile,
    Selection,
    parse_chat_request,
)
from .diff import ApplyDiffRequest, DiffHunk, DiffOutcome, DiffProposal, DiffStatus
from .stream import (
    DiffEvent,
    DoneEvent,
    ErrorEvent,
    StreamResponse,
    TokenEvent,
    encode_event,
    is_terminal,
    parse_event,
)

__all__ = [
    # Chat models
    "ActiveFile",
    "ChatContext",
    "ChatRequest",
    "Diagnostic",
    "DiagnosticSeverity",
    "LLMMessage",
    "OpenFile",
    "Selection",
    "parse_chat_request",
    # Diff models
    "ApplyDiffRequest",
    "DiffHunk",
    "DiffOutcome",
    "DiffProposal",
    "DiffStatus",
    # Stream events
    "DiffEvent",
    "DoneEvent",
    "ErrorEvent",
    "StreamResponse",
    "TokenEvent",
    "encode_event",
    "is_terminal",
    "parse_event",
]
