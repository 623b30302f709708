"""Chat mode data models"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from errors import ValidationError


class WireModel(BaseModel):
    """Immutable model serialized with camelCase keys"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class DiagnosticSeverity(str, Enum):
    """Severity levels reported by the editor"""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


class Selection(WireModel):
    """Half-open character range [start, end) inside the active file"""

    start: int
    end: int
    text: str

    @model_validator(mode="after")
    def check_bounds(self) -> "Selection":
        if self.start < 0 or self.end < 0:
            raise ValueError("selection bounds must be non-negative")
        if self.start > self.end:
            raise ValueError("selection start must not exceed end")
        return self


class ActiveFile(WireModel):
    """File focused in the editor, with full content"""

    path: str
    content: str
    language: str
    selection: Selection | None = None

    @model_validator(mode="after")
    def check_selection(self) -> "ActiveFile":
        selection = self.selection
        if selection is None:
            return self
        if selection.end > len(self.content):
            raise ValueError("selection end is past the end of the file")
        if self.content[selection.start : selection.end] != selection.text:
            raise ValueError("selection text does not match file content")
        return self


class OpenFile(WireModel):
    """Another file open in the editor (no content)"""

    path: str
    language: str


class Diagnostic(WireModel):
    """Editor-reported issue on a 1-based line"""

    file: str
    message: str
    severity: DiagnosticSeverity
    line: int = Field(ge=1)


class ChatContext(WireModel):
    """Snapshot of editor state at request time"""

    active_file: ActiveFile | None = None
    workspace_root: str | None = None
    open_files: list[OpenFile] = []
    diagnostics: list[Diagnostic] = []


class ChatRequest(WireModel):
    """Request for chat message"""

    prompt: str
    context: ChatContext = ChatContext()
    model: str | None = None  # empty means the configured default
    stream: bool = False

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Prompt is required")
        return value


class LLMMessage(BaseModel):
    """One turn of a model-facing conversation"""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


def describe_validation_error(exc) -> str:
    """Flatten pydantic (or FastAPI request) errors into one readable message"""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def parse_chat_request(payload: dict[str, Any]) -> ChatRequest:
    """Validate a raw request body, raising the service ValidationError"""
    try:
        return ChatRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(describe_validation_error(e)) from e
