"""Document interface consumed by the resolver and executor."""

from abc import ABC, abstractmethod
from typing import Any

from ..errors import UnsupportedCapabilityError

Cell = Any
Matrix = list[list[Cell]]

# Optional capability names a document may declare
FORMATTING = "formatting"
WORKSHEETS = "worksheets"
PIVOT_TABLES = "pivot_tables"
CHARTS = "charts"
FILTERS = "filters"
CONDITIONAL_FORMATTING = "conditional_formatting"
DATA_VALIDATION = "data_validation"

ALL_CAPABILITIES = frozenset(
    {
        FORMATTING,
        WORKSHEETS,
        PIVOT_TABLES,
        CHARTS,
        FILTERS,
        CONDITIONAL_FORMATTING,
        DATA_VALIDATION,
    }
)


class DocumentPort(ABC):
    """
    Read/write access to a rectangular grid addressed in A1 notation.

    Implementations raise ``CollaboratorError`` (or any exception) on failure;
    callers treat every failure as a failed operation, never as fatal.
    Optional operations are only invoked when their name is listed in
    ``capabilities``.
    """

    capabilities: frozenset[str] = frozenset()

    @abstractmethod
    async def read_grid(self, range_address: str) -> Matrix:
        """Read the values of a range as a row-major matrix."""

    @abstractmethod
    async def write_cell(self, address: str, value: Cell) -> None:
        """Write a single value."""

    @abstractmethod
    async def write_range(self, address: str, values: Matrix) -> None:
        """Write a matrix whose top-left cell is the start of ``address``."""

    @abstractmethod
    async def get_selection(self) -> str:
        """Return the currently selected range."""

    @abstractmethod
    async def get_worksheet_name(self) -> str:
        """Return the name of the active worksheet."""

    @abstractmethod
    async def get_used_range(self) -> str:
        """Return the smallest range covering every populated cell ("A1" when empty)."""

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    async def start(self) -> None:
        """Start any background work owned by the document."""

    async def close(self) -> None:
        """Stop background work and release resources."""

    async def request_save(self) -> None:
        """Hint that the document changed and should be persisted soon."""

    # Optional capabilities

    async def apply_formatting(self, address: str, formatting: dict[str, Any]) -> None:
        raise UnsupportedCapabilityError(FORMATTING)

    async def create_worksheet(self, name: str) -> None:
        raise UnsupportedCapabilityError(WORKSHEETS)

    async def delete_worksheet(self, name: str) -> None:
        raise UnsupportedCapabilityError(WORKSHEETS)

    async def rename_worksheet(self, old_name: str, new_name: str) -> None:
        raise UnsupportedCapabilityError(WORKSHEETS)

    async def create_pivot_table(self, spec: dict[str, Any]) -> dict[str, Any]:
        raise UnsupportedCapabilityError(PIVOT_TABLES)

    async def create_chart(self, spec: dict[str, Any]) -> dict[str, Any]:
        raise UnsupportedCapabilityError(CHARTS)

    async def apply_filter(self, range_address: str, criteria: dict[str, Any]) -> None:
        raise UnsupportedCapabilityError(FILTERS)

    async def apply_conditional_formatting(self, spec: dict[str, Any]) -> None:
        raise UnsupportedCapabilityError(CONDITIONAL_FORMATTING)

    async def apply_data_validation(self, range_address: str, validation: dict[str, Any]) -> None:
        raise UnsupportedCapabilityError(DATA_VALIDATION)
