"""A1 notation helpers for cell and range addresses."""

import re
from typing import NamedTuple

CELL_PATTERN = re.compile(r"^([A-Z]+)([1-9][0-9]*)$")


def col_letter_to_index(col: str) -> int:
    """Convert column letter(s) to 0-based index. A=0, B=1, ..., Z=25, AA=26, etc."""
    result = 0
    for char in col.upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result - 1


def index_to_col_letter(index: int) -> str:
    """Convert 0-based index to column letter(s)."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative: {index}")
    result = ""
    index += 1
    while index > 0:
        index -= 1
        result = chr(ord("A") + (index % 26)) + result
        index //= 26
    return result


def parse_cell_notation(cell: str) -> tuple[str, int]:
    """Parse A1 notation into column letters and row number."""
    match = CELL_PATTERN.match(cell.strip().upper())
    if not match:
        raise ValueError(f"Invalid cell notation: {cell}")
    return match.group(1), int(match.group(2))


def cell_to_indices(cell: str) -> tuple[int, int]:
    """Convert A1 notation to 0-based (row, col)."""
    col, row = parse_cell_notation(cell)
    return row - 1, col_letter_to_index(col)


def indices_to_cell(row: int, col: int) -> str:
    """Convert 0-based (row, col) to A1 notation."""
    if row < 0:
        raise ValueError(f"Row index must be non-negative: {row}")
    return f"{index_to_col_letter(col)}{row + 1}"


class RangeBounds(NamedTuple):
    """Inclusive 0-based bounds of a rectangular range."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int

    @property
    def rows(self) -> int:
        return self.end_row - self.start_row + 1

    @property
    def columns(self) -> int:
        return self.end_col - self.start_col + 1

    @property
    def cells(self) -> int:
        return self.rows * self.columns

    @property
    def is_single_cell(self) -> bool:
        return self.rows == 1 and self.columns == 1

    def to_a1(self) -> str:
        start = indices_to_cell(self.start_row, self.start_col)
        if self.is_single_cell:
            return start
        return f"{start}:{indices_to_cell(self.end_row, self.end_col)}"


def parse_range(address: str) -> RangeBounds:
    """
    Decompose a range like "A1:B5" (or a single cell "A1") into bounds.

    Raises:
        ValueError: If either corner is malformed or the range is reversed.
    """
    parts = address.strip().split(":")
    if len(parts) == 1:
        row, col = cell_to_indices(parts[0])
        return RangeBounds(row, col, row, col)
    if len(parts) != 2:
        raise ValueError(f"Invalid range notation: {address}")

    start_row, start_col = cell_to_indices(parts[0])
    end_row, end_col = cell_to_indices(parts[1])
    if start_row > end_row or start_col > end_col:
        raise ValueError(f"Range start must not come after its end: {address}")
    return RangeBounds(start_row, start_col, end_row, end_col)


def range_from_anchor(anchor: str, rows: int, columns: int) -> RangeBounds:
    """Bounds of a rows x columns block whose top-left cell is ``anchor``."""
    start_row, start_col = cell_to_indices(anchor)
    return RangeBounds(
        start_row,
        start_col,
        start_row + max(rows, 1) - 1,
        start_col + max(columns, 1) - 1,
    )


def is_cell_address(value: str) -> bool:
    return bool(CELL_PATTERN.match(value))
