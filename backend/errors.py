"""Error taxonomy shared by the protocol, diff and persistence layers"""

from __future__ import annotations


class AssistantError(Exception):
    """Base class for errors that map onto a JSON error body"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AssistantError):
    """Malformed input data, rejected before protocol processing"""

    status_code = 400


class ProtocolError(AssistantError):
    """Ordering or uniqueness violation within a stream"""

    status_code = 409


class PatchConflictError(AssistantError):
    """Patch context does not match the current file content"""

    status_code = 409


class NotFoundError(AssistantError):
    """Unknown diff id, stream id or entity id"""

    status_code = 404


class LLMServiceError(AssistantError):
    """Upstream model provider failed"""

    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status
