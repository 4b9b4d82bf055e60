"""Exception types shared across CellPilot components."""

from typing import Optional


class CellPilotError(Exception):
    """Base class for all CellPilot errors."""


class ParseError(CellPilotError):
    """Free text matched an intent but did not yield enough fields."""


class FormatError(ParseError):
    """A literal embedded in a command (e.g. a values array) is malformed."""


class ActionValidationError(CellPilotError):
    """An action payload is malformed, incomplete, or of an unknown kind."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class CollaboratorError(CellPilotError):
    """A document operation failed."""


class UnsupportedCapabilityError(CollaboratorError):
    """An optional document capability was requested but is not available."""

    def __init__(self, capability: str):
        super().__init__(f"Document does not support '{capability}'")
        self.capability = capability
