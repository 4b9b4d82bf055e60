"""Reasoning backends consulted for requests the local rules do not recognize."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ReasoningBackend(ABC):
    """Produces a response envelope (wire shape) for free text."""

    @abstractmethod
    async def respond(self, text: str) -> dict[str, Any]:
        """Return ``{"message": ..., "actions": [...]}`` for ``text``."""


class ScriptedBackend(ReasoningBackend):
    """
    Offline backend answering chart, formula and pivot requests with fixed actions.

    Useful for demos and tests of the remote-envelope path; every other
    request gets an acknowledgment with no actions.
    """

    async def respond(self, text: str) -> dict[str, Any]:
        lowered = text.lower()
        logger.info(f"Scripted backend handling {text!r}")

        if "pivot table" in lowered:
            return {
                "message": "I'll create a pivot table for you based on the data in the current worksheet.",
                "actions": [
                    {
                        "type": "CREATE_PIVOT_TABLE",
                        "description": "Create a pivot table from the data in the current worksheet",
                        "data": {
                            "sourceRange": "A1:D10",
                            "destinationRange": "F1",
                            "rows": ["Category"],
                            "columns": ["Region"],
                            "values": [{"field": "Sales", "function": "sum"}],
                        },
                    }
                ],
            }

        if "chart" in lowered:
            return {
                "message": "I'll create a chart for you based on the data in the current worksheet.",
                "actions": [
                    {
                        "type": "CREATE_CHART",
                        "description": "Create a column chart from the data in the current worksheet",
                        "data": {
                            "type": "column",
                            "title": "Sales by Region",
                            "dataRange": "A1:B5",
                            "destinationRange": "D1:H10",
                        },
                    }
                ],
            }

        if "formula" in lowered:
            return {
                "message": "I'll insert a formula for you in the current worksheet.",
                "actions": [
                    {
                        "type": "INSERT_FORMULA",
                        "description": "Insert a SUM formula to calculate the total sales",
                        "data": {"address": "B10", "formula": "=SUM(B2:B9)"},
                    }
                ],
            }

        return {
            "message": "I understand you want to work with the spreadsheet, but I don't have a plan for that yet.",
            "actions": [],
        }


def create_backend(name: str) -> Optional[ReasoningBackend]:
    """Build the backend named by configuration ('none' disables it)."""
    name = (name or "none").strip().lower()
    if name == "none":
        return None
    if name == "scripted":
        return ScriptedBackend()
    raise ValueError(f"Unknown reasoning backend: '{name}'")
