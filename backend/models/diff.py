"""Diff-related data models"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from .chat import WireModel


class DiffStatus(str, Enum):
    """Lifecycle of a proposed change"""

    PROPOSED = "proposed"
    APPLIED = "applied"
    DISCARDED = "discarded"


class DiffProposal(WireModel):
    """A proposed file change carried by a diff event"""

    id: str
    file_path: str
    patch: str  # unified diff body
    description: str | None = None


class DiffHunk(BaseModel):
    """A single parsed hunk of a unified diff"""

    old_start: int  # 1-indexed, 0 for insertion into empty file
    old_count: int
    new_start: int
    new_count: int
    lines: list[str]  # prefixed with " ", "-" or "+", line ending included


class ApplyDiffRequest(WireModel):
    """Current content of the target file, supplied by the editor"""

    content: str


class DiffOutcome(WireModel):
    """Result of an apply or discard action"""

    id: str
    file_path: str
    status: DiffStatus
    content: str | None = None  # new file content after apply
