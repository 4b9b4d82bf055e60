"""Resolve free-text commands into local responses or action batches."""

import logging
from typing import Any, Optional

from ..errors import ActionValidationError
from ..output import OutputFormatter
from ..protocol import ActionKind, validate_action
from ..sheets import DocumentPort, parse_range
from .models import ActionBatch, LocalResponse, Resolution, Unrecognized
from .rules import (
    RULES,
    CellWriteIntent,
    MalformedValues,
    PivotIntent,
    RangeWriteIntent,
    ReadIntent,
    Rule,
    SelectionIntent,
    classify,
)

logger = logging.getLogger(__name__)

HELP_MESSAGE = (
    "I can help you read and write to the spreadsheet. Try commands like:\n"
    "- 'Read the current worksheet'\n"
    "- 'Write value 42 to cell A1'\n"
    "- 'Write range A1:B3 values [[1,2],[3,4],[5,6]]'\n"
    "- 'Show me what's in the selected range'"
)


class IntentResolver:
    """
    Maps free text to a LocalResponse, an ActionBatch or Unrecognized.

    Reads are answered here through the document and never produce actions;
    every other recognized intent becomes validated actions for the executor.
    """

    def __init__(
        self,
        document: DocumentPort,
        formatter: Optional[OutputFormatter] = None,
        rules: tuple[Rule, ...] = RULES,
    ):
        """
        Initialize the resolver.

        Args:
            document: Document used to answer read queries
            formatter: Formatter for read bodies (default width if not provided)
            rules: Prioritized rule functions, first match wins
        """
        self.document = document
        self.formatter = formatter or OutputFormatter()
        self.rules = rules

    async def resolve(self, text: str) -> Resolution:
        """
        Classify ``text`` and build its resolution.

        Args:
            text: The user's free-text command

        Returns:
            LocalResponse, ActionBatch or Unrecognized
        """
        intent = classify(text, self.rules)
        logger.info(f"Resolved {text!r} as {type(intent).__name__ if intent else 'unrecognized'}")

        if isinstance(intent, PivotIntent):
            return self._pivot_batch(intent)
        if isinstance(intent, ReadIntent):
            return await self.read(intent.address, intent.use_selection)
        if isinstance(intent, CellWriteIntent):
            return self._batch(
                f'I\'ve written the value "{intent.value}" to cell {intent.address}',
                {
                    "kind": ActionKind.WRITE_CELL,
                    "payload": {"address": intent.address, "value": intent.value},
                    "description": f"Write {intent.value!r} to {intent.address}",
                },
            )
        if isinstance(intent, RangeWriteIntent):
            return self._batch(
                f"I've written values to range {intent.address}",
                {
                    "kind": ActionKind.WRITE_RANGE,
                    "payload": {"address": intent.address, "values": intent.values},
                    "description": f"Write values to {intent.address}",
                },
            )
        if isinstance(intent, MalformedValues):
            return LocalResponse(
                message=f"Error writing to range {intent.address}: {intent.message}",
                success=False,
                errors=[intent.message],
            )
        if isinstance(intent, SelectionIntent):
            return await self.read(use_selection=True)

        return Unrecognized(text=text, message=HELP_MESSAGE)

    def _pivot_batch(self, intent: PivotIntent) -> Resolution:
        payload: dict[str, Any] = {
            "source_range": intent.source_range,
            "destination_range": intent.destination_range,
            "rows": list(intent.rows),
            "columns": list(intent.columns),
            "values": [{"field": intent.value_field, "function": intent.function}],
        }
        if intent.filters:
            payload["filters"] = list(intent.filters)
        return self._batch(
            f"I'll create a pivot table from {intent.source_range} at {intent.destination_range}, "
            f"summarizing {intent.function} of {intent.value_field}",
            {
                "kind": ActionKind.CREATE_PIVOT_TABLE,
                "payload": payload,
                "description": f"Pivot {intent.source_range} into {intent.destination_range}",
            },
        )

    def _batch(self, message: str, raw: dict[str, Any]) -> Resolution:
        """Validate a resolver-built action; a rejected one becomes a failed local response."""
        try:
            action = validate_action(raw)
        except ActionValidationError as e:
            return LocalResponse(
                message=f"I couldn't build that {raw['kind'].value} action: {e}",
                success=False,
                errors=e.errors or [str(e)],
            )
        return ActionBatch(message=message, actions=[action])

    async def read(self, address: Optional[str] = None, use_selection: bool = False) -> LocalResponse:
        """
        Read from the document and format the result.

        Args:
            address: Explicit cell or range; takes precedence over the selection
            use_selection: Read the current selection instead of the used range

        Returns:
            LocalResponse whose body is the formatted grid
        """
        try:
            name = await self.document.get_worksheet_name()
            if address:
                message = f'Here\'s what I found in {address} on worksheet "{name}":'
            elif use_selection:
                address = await self.document.get_selection()
                message = f"Here's what's in the selected range {address}:"
            else:
                address = await self.document.get_used_range()
                message = f'Here\'s what I found in the worksheet "{name}":'

            bounds = parse_range(address)
            grid = await self.document.read_grid(address)
        except Exception as e:
            logger.error(f"Error reading worksheet: {e}", exc_info=True)
            return LocalResponse(
                message=f"Error reading worksheet: {e}",
                success=False,
                errors=[str(e)],
            )

        body = self.formatter.format(grid, bounds.start_row, bounds.start_col)
        return LocalResponse(
            message=message,
            body=body,
            data={"worksheet": name, "range": bounds.to_a1(), "values": grid},
        )


__all__ = ["HELP_MESSAGE", "IntentResolver"]
