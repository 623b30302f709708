"""Services module - Business logic layer"""

from .assistant import AssistantService
from .config_manager import ConfigManager, configure_logging
from .diff_generator import DiffGenerator
from .diff_store import DiffStore
from .entity_store import EntityStore
from .llm_service import LLMService
from .patch_applier import apply_patch, parse_patch
from .prompt_builder import build_messages, build_system_prompt
from .stream_protocol import ChatStream, StreamState, guard_stream
from .stream_registry import StreamRegistry

__all__ = [
    "AssistantService",
    "ConfigManager",
    "configure_logging",
    "DiffGenerator",
    "DiffStore",
    "EntityStore",
    "LLMService",
    "apply_patch",
    "parse_patch",
    "build_messages",
    "build_system_prompt",
    "ChatStream",
    "StreamState",
    "guard_stream",
    "StreamRegistry",
]
