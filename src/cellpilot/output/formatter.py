"""Render grid data as a bounded, human-scannable text summary."""

import json
import textwrap
from datetime import date, datetime, time
from typing import Any, Optional

from ..sheets.addresses import index_to_col_letter

EMPTY_WORKSHEET = "The worksheet is empty."
DEFAULT_MAX_WIDTH = 80


def _is_populated(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def render_value(value: Any) -> str:
    """Compact, stable text form of a cell value."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    return str(value)


class OutputFormatter:
    """
    Formats a matrix into "Row N: A1=..., B1=..." lines.

    Only populated cells are listed. Lines are capped at ``max_width``: when
    the next cell would overflow, the line is flushed and continued on an
    indented line; a cell too wide for any line is word-wrapped at spaces.
    """

    def __init__(self, max_width: int = DEFAULT_MAX_WIDTH, indent: str = "  "):
        if max_width <= len(indent):
            raise ValueError(f"max_width must exceed the indent width, got {max_width}")
        self.max_width = max_width
        self.indent = indent

    def format(self, grid: Optional[list[list[Any]]], start_row: int = 0, start_col: int = 0) -> str:
        """
        Render ``grid`` whose top-left cell sits at 0-based (start_row, start_col).

        Returns the fixed sentinel when no cell is populated.
        """
        lines: list[str] = []
        for row_offset, row in enumerate(grid or []):
            row_number = start_row + row_offset + 1
            entries = [
                f"{index_to_col_letter(start_col + col_offset)}{row_number}={render_value(value)}"
                for col_offset, value in enumerate(row or [])
                if _is_populated(value)
            ]
            if entries:
                lines.extend(self._wrap_row(f"Row {row_number}:", entries))

        if not lines:
            return EMPTY_WORKSHEET
        return "\n".join(lines)

    def _wrap_row(self, header: str, entries: list[str]) -> list[str]:
        lines: list[str] = []
        current = header
        filled = False

        for entry in entries:
            separator = ", " if filled else " "
            if len(current) + len(separator) + len(entry) <= self.max_width:
                current += separator + entry
                filled = True
                continue

            if filled:
                lines.append(current)
                current, separator = self.indent, ""

            if len(current) + len(separator) + len(entry) <= self.max_width:
                current += separator + entry
                filled = True
                continue

            # Entry alone is too wide: split at spaces, never inside a word
            wrapped = textwrap.wrap(
                entry,
                width=self.max_width,
                initial_indent=current + separator,
                subsequent_indent=self.indent,
                break_long_words=False,
                break_on_hyphens=False,
            )
            lines.extend(wrapped[:-1])
            current = wrapped[-1]
            filled = True

        lines.append(current)
        return lines


def format_grid(grid: Optional[list[list[Any]]], max_width: int = DEFAULT_MAX_WIDTH) -> str:
    """Format with a throwaway formatter."""
    return OutputFormatter(max_width=max_width).format(grid)
