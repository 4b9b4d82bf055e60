"""Document access: A1 addressing, the document interface and its implementations."""

from .addresses import (
    RangeBounds,
    cell_to_indices,
    col_letter_to_index,
    index_to_col_letter,
    indices_to_cell,
    parse_cell_notation,
    parse_range,
    range_from_anchor,
)
from .port import ALL_CAPABILITIES, DocumentPort, Matrix
from .memory import InMemoryDocument, Worksheet

__all__ = [
    "RangeBounds",
    "cell_to_indices",
    "col_letter_to_index",
    "index_to_col_letter",
    "indices_to_cell",
    "parse_cell_notation",
    "parse_range",
    "range_from_anchor",
    "ALL_CAPABILITIES",
    "DocumentPort",
    "Matrix",
    "InMemoryDocument",
    "Worksheet",
]
