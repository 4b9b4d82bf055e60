"""In-memory workbook implementing the document interface."""

import asyncio
import contextlib
import json
import logging
import statistics
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..errors import CollaboratorError
from .addresses import (
    RangeBounds,
    cell_to_indices,
    indices_to_cell,
    parse_range,
    range_from_anchor,
)
from .port import ALL_CAPABILITIES, Cell, DocumentPort, Matrix

logger = logging.getLogger(__name__)


@dataclass
class Worksheet:
    """Sparse worksheet storage keyed by 0-based (row, col)."""

    name: str
    cells: dict[tuple[int, int], Cell] = field(default_factory=dict)
    formats: dict[tuple[int, int], dict[str, Any]] = field(default_factory=dict)
    charts: list[dict[str, Any]] = field(default_factory=list)
    pivot_tables: list[dict[str, Any]] = field(default_factory=list)
    filters: list[dict[str, Any]] = field(default_factory=list)
    conditional_formats: list[dict[str, Any]] = field(default_factory=list)
    data_validations: list[dict[str, Any]] = field(default_factory=list)

    def used_bounds(self) -> Optional[RangeBounds]:
        if not self.cells:
            return None
        rows = [row for row, _ in self.cells]
        cols = [col for _, col in self.cells]
        return RangeBounds(min(rows), min(cols), max(rows), max(cols))


def _bounds(address: str) -> RangeBounds:
    try:
        return parse_range(address)
    except ValueError as e:
        raise CollaboratorError(str(e)) from e


def _is_blank(value: Cell) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_number(value: Cell) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", ""))
        except ValueError:
            return None
    return None


def _aggregate(function: str, values: list[Cell]) -> Optional[float]:
    """Summarize a group of cell values the way a pivot table data field does."""
    if function == "count":
        return len([v for v in values if not _is_blank(v)])

    numbers = [n for n in (_as_number(v) for v in values) if n is not None]
    if not numbers:
        return None
    if function == "sum":
        result = sum(numbers)
    elif function == "average":
        result = statistics.fmean(numbers)
    elif function == "max":
        result = max(numbers)
    elif function == "min":
        result = min(numbers)
    elif function == "product":
        result = 1.0
        for n in numbers:
            result *= n
    elif function in ("stdDev", "var"):
        if len(numbers) < 2:
            return None
        result = statistics.stdev(numbers) if function == "stdDev" else statistics.variance(numbers)
    elif function in ("stdDevP", "varP"):
        result = statistics.pstdev(numbers) if function == "stdDevP" else statistics.pvariance(numbers)
    else:
        raise CollaboratorError(f"Unsupported aggregation function: {function}")

    return int(result) if float(result).is_integer() else result


class InMemoryDocument(DocumentPort):
    """
    A workbook held entirely in memory.

    Supports every optional capability. When ``snapshot_path`` is set, the
    workbook is written there as JSON by a periodic autosave task that runs
    between ``start()`` and ``close()``; ``request_save()`` marks the workbook
    dirty so the next tick flushes it.
    """

    capabilities = ALL_CAPABILITIES

    def __init__(
        self,
        worksheet_name: str = "Sheet1",
        selection: str = "A1",
        snapshot_path: Optional[Path] = None,
        autosave_interval: float = 5.0,
        data: Optional[Matrix] = None,
    ):
        self.worksheets: dict[str, Worksheet] = {worksheet_name: Worksheet(worksheet_name)}
        self.active_name = worksheet_name
        self.selection = selection
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None
        self.autosave_interval = autosave_interval
        self._dirty = False
        self._autosave_task: Optional[asyncio.Task] = None

        if data:
            self._write_matrix(self.active, 0, 0, data)

    @property
    def active(self) -> Worksheet:
        return self.worksheets[self.active_name]

    @property
    def dirty(self) -> bool:
        return self._dirty

    # Grid access

    async def read_grid(self, range_address: str) -> Matrix:
        bounds = _bounds(range_address)
        cells = self.active.cells
        return [
            [cells.get((row, col)) for col in range(bounds.start_col, bounds.end_col + 1)]
            for row in range(bounds.start_row, bounds.end_row + 1)
        ]

    async def write_cell(self, address: str, value: Cell) -> None:
        bounds = _bounds(address)
        self._write_matrix(self.active, bounds.start_row, bounds.start_col, [[value]])

    async def write_range(self, address: str, values: Matrix) -> None:
        bounds = _bounds(address)
        self._write_matrix(self.active, bounds.start_row, bounds.start_col, values)

    async def get_selection(self) -> str:
        return self.selection

    def select(self, address: str) -> None:
        """Change the current selection."""
        self.selection = _bounds(address).to_a1()

    async def get_worksheet_name(self) -> str:
        return self.active_name

    async def get_used_range(self) -> str:
        bounds = self.active.used_bounds()
        return bounds.to_a1() if bounds else "A1"

    def activate(self, name: str) -> None:
        """Make another worksheet the active one."""
        self._require_sheet(name)
        self.active_name = name

    @staticmethod
    def _write_matrix(sheet: Worksheet, start_row: int, start_col: int, values: Matrix) -> None:
        for row_offset, row in enumerate(values):
            for col_offset, value in enumerate(row):
                key = (start_row + row_offset, start_col + col_offset)
                if value is None:
                    sheet.cells.pop(key, None)
                else:
                    sheet.cells[key] = value

    def _require_sheet(self, name: str) -> Worksheet:
        if name not in self.worksheets:
            raise CollaboratorError(f"Worksheet not found: {name}")
        return self.worksheets[name]

    # Worksheets

    async def create_worksheet(self, name: str) -> None:
        if name in self.worksheets:
            raise CollaboratorError(f"Worksheet already exists: {name}")
        self.worksheets[name] = Worksheet(name)

    async def delete_worksheet(self, name: str) -> None:
        self._require_sheet(name)
        if len(self.worksheets) == 1:
            raise CollaboratorError("Cannot delete the only worksheet")
        del self.worksheets[name]
        if self.active_name == name:
            self.active_name = next(iter(self.worksheets))

    async def rename_worksheet(self, old_name: str, new_name: str) -> None:
        sheet = self._require_sheet(old_name)
        if new_name in self.worksheets:
            raise CollaboratorError(f"Worksheet already exists: {new_name}")
        sheet.name = new_name
        # Rebuild to keep tab order
        self.worksheets = {
            (new_name if key == old_name else key): value
            for key, value in self.worksheets.items()
        }
        if self.active_name == old_name:
            self.active_name = new_name

    # Formatting and rules

    async def apply_formatting(self, address: str, formatting: dict[str, Any]) -> None:
        bounds = _bounds(address)
        for row in range(bounds.start_row, bounds.end_row + 1):
            for col in range(bounds.start_col, bounds.end_col + 1):
                current = self.active.formats.setdefault((row, col), {})
                for section, value in formatting.items():
                    if isinstance(value, dict) and isinstance(current.get(section), dict):
                        current[section] = {**current[section], **value}
                    else:
                        current[section] = value

    def get_format(self, address: str) -> dict[str, Any]:
        return self.active.formats.get(cell_to_indices(address), {})

    async def apply_filter(self, range_address: str, criteria: dict[str, Any]) -> None:
        bounds = _bounds(range_address)
        # A worksheet holds at most one auto-filter
        self.active.filters = [{"range": bounds.to_a1(), "criteria": criteria}]

    async def apply_conditional_formatting(self, spec: dict[str, Any]) -> None:
        _bounds(spec["range"])
        self.active.conditional_formats.append(spec)

    async def apply_data_validation(self, range_address: str, validation: dict[str, Any]) -> None:
        bounds = _bounds(range_address)
        self.active.data_validations.append({"range": bounds.to_a1(), "validation": validation})

    async def create_chart(self, spec: dict[str, Any]) -> dict[str, Any]:
        _bounds(spec["data_range"])
        _bounds(spec["destination_range"])
        chart_id = f"Chart{sum(len(s.charts) for s in self.worksheets.values()) + 1}"
        self.active.charts.append({"id": chart_id, **spec})
        return {"chart_id": chart_id}

    # Pivot tables

    async def create_pivot_table(self, spec: dict[str, Any]) -> dict[str, Any]:
        source = await self.read_grid(spec["source_range"])
        if len(source) < 2:
            raise CollaboratorError("Pivot source range needs a header row and at least one data row")

        header = [str(h).strip() if h is not None else "" for h in source[0]]
        records = [row for row in source[1:] if not all(_is_blank(v) for v in row)]

        def column_of(name: str) -> int:
            if name not in header:
                raise CollaboratorError(f"Field '{name}' not found in source header {header}")
            return header.index(name)

        row_cols = [column_of(name) for name in spec.get("rows", [])]
        col_cols = [column_of(name) for name in spec.get("columns", [])]
        value_fields = [(column_of(v["field"]), v["field"], v["function"]) for v in spec.get("values", [])]
        if not value_fields:
            raise CollaboratorError("Pivot table needs at least one value field")

        def key(record: list[Cell], columns: list[int]) -> tuple:
            return tuple("" if _is_blank(record[c]) else record[c] for c in columns)

        row_keys = sorted({key(r, row_cols) for r in records}, key=lambda k: [str(v) for v in k])
        col_keys = sorted({key(r, col_cols) for r in records}, key=lambda k: [str(v) for v in k])

        def label(col_key: tuple, field_name: str, function: str) -> str:
            parts = [str(v) for v in col_key]
            if len(value_fields) > 1 or not parts:
                parts.append(f"{function.capitalize()} of {field_name}")
            return " / ".join(parts)

        output: Matrix = [
            list(spec.get("rows", []) or ["Values"])
            + [label(ck, name, fn) for ck in col_keys for _, name, fn in value_fields]
            + [f"Total {fn.capitalize()} of {name}" for _, name, fn in value_fields]
        ]
        for rk in row_keys:
            in_row = [r for r in records if key(r, row_cols) == rk]
            line = list(rk) or ["Total"]
            for ck in col_keys:
                group = [r for r in in_row if key(r, col_cols) == ck]
                line.extend(_aggregate(fn, [r[idx] for r in group]) for idx, _, fn in value_fields)
            line.extend(_aggregate(fn, [r[idx] for r in in_row]) for idx, _, fn in value_fields)
            output.append(line)

        if row_cols:
            grand = ["Grand Total"] + [""] * (len(row_cols) - 1)
            for ck in col_keys:
                group = [r for r in records if key(r, col_cols) == ck]
                grand.extend(_aggregate(fn, [r[idx] for r in group]) for idx, _, fn in value_fields)
            grand.extend(_aggregate(fn, [r[idx] for r in records]) for idx, _, fn in value_fields)
            output.append(grand)

        anchor = _bounds(spec["destination_range"])
        target = range_from_anchor(
            indices_to_cell(anchor.start_row, anchor.start_col), len(output), len(output[0])
        )
        self._write_matrix(self.active, target.start_row, target.start_col, output)
        name = spec.get("name") or f"PivotTable{len(self.active.pivot_tables) + 1}"
        self.active.pivot_tables.append({"name": name, "range": target.to_a1(), **spec})
        logger.info(f"Pivot table '{name}' written to {target.to_a1()}")
        return {"name": name, "range": target.to_a1(), "rows": target.rows, "columns": target.columns}

    # Persistence

    async def request_save(self) -> None:
        self._dirty = True

    async def start(self) -> None:
        if self.snapshot_path is None or self._autosave_task is not None:
            return
        self._autosave_task = asyncio.create_task(self._autosave_loop())
        logger.info(f"Autosave started for {self.snapshot_path} every {self.autosave_interval}s")

    async def close(self) -> None:
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._autosave_task
            self._autosave_task = None
        if self._dirty:
            await self.save()

    async def _autosave_loop(self) -> None:
        while True:
            await asyncio.sleep(self.autosave_interval)
            if self._dirty:
                try:
                    await self.save()
                except OSError as e:
                    logger.error(f"Autosave failed: {e}")

    async def save(self) -> None:
        """Write the workbook snapshot now."""
        # Cleared before snapshotting so a save requested mid-write stays pending
        self._dirty = False
        if self.snapshot_path is None:
            return
        snapshot = self.to_snapshot()
        try:
            await asyncio.to_thread(self._write_snapshot, self.snapshot_path, snapshot)
        except BaseException:
            self._dirty = True
            raise
        logger.debug(f"Workbook saved to {self.snapshot_path}")

    @staticmethod
    def _write_snapshot(path: Path, snapshot: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(snapshot, indent=2, default=str))

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "active": self.active_name,
            "selection": self.selection,
            "worksheets": {
                name: {
                    "cells": {indices_to_cell(r, c): v for (r, c), v in sorted(sheet.cells.items())},
                    "formats": {indices_to_cell(r, c): f for (r, c), f in sorted(sheet.formats.items())},
                }
                for name, sheet in self.worksheets.items()
            },
        }

    @classmethod
    def from_snapshot(cls, path: Path, autosave_interval: float = 5.0) -> "InMemoryDocument":
        """Load a workbook previously written by ``save()``."""
        data = json.loads(Path(path).read_text())
        names = list(data["worksheets"])
        document = cls(
            worksheet_name=names[0],
            selection=data.get("selection", "A1"),
            snapshot_path=path,
            autosave_interval=autosave_interval,
        )
        document.worksheets = {}
        for name in names:
            sheet = Worksheet(name)
            stored = data["worksheets"][name]
            sheet.cells = {cell_to_indices(a): v for a, v in stored.get("cells", {}).items()}
            sheet.formats = {cell_to_indices(a): f for a, f in stored.get("formats", {}).items()}
            document.worksheets[name] = sheet
        document.active_name = data.get("active", names[0])
        return document
