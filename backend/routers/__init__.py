"""Routers module - FastAPI route handlers"""

from . import chat, config, entities

__all__ = ["chat", "config", "entities"]
