"""Free-text intent resolution."""

from .models import ActionBatch, LocalResponse, Resolution, Unrecognized
from .resolver import HELP_MESSAGE, IntentResolver
from .rules import RULES, classify, parse_values_literal

__all__ = [
    "ActionBatch",
    "LocalResponse",
    "Resolution",
    "Unrecognized",
    "HELP_MESSAGE",
    "IntentResolver",
    "RULES",
    "classify",
    "parse_values_literal",
]
