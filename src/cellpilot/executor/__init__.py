"""Sequential execution of protocol actions against a document."""

from .executor import ActionExecutor, CustomHandler, CustomHandlerError

__all__ = ["ActionExecutor", "CustomHandler", "CustomHandlerError"]
