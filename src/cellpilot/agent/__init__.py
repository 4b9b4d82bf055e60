"""Caller-facing agent service and reasoning backends."""

from .backend import ReasoningBackend, ScriptedBackend, create_backend
from .service import SheetAgent, create_agent, create_document

__all__ = [
    "ReasoningBackend",
    "ScriptedBackend",
    "create_backend",
    "SheetAgent",
    "create_agent",
    "create_document",
]
