"""Tests for the in-memory workbook."""

import asyncio
import json
import threading

import pytest

from cellpilot.errors import CollaboratorError
from cellpilot.sheets import InMemoryDocument


class TestGrid:
    """Test grid reads and writes."""

    @pytest.mark.asyncio
    async def test_read_pads_missing_cells_with_none(self, document):
        await document.write_cell("B2", "x")

        assert await document.read_grid("A1:C2") == [[None, None, None], [None, "x", None]]

    @pytest.mark.asyncio
    async def test_write_range_is_anchored_at_start(self, document):
        await document.write_range("B2:C3", [[1, 2], [3, 4]])

        assert await document.get_used_range() == "B2:C3"
        assert await document.read_grid("C3") == [[4]]

    @pytest.mark.asyncio
    async def test_writing_none_clears_cell(self, document):
        await document.write_cell("A1", 1)
        await document.write_cell("A1", None)

        assert await document.get_used_range() == "A1"
        assert document.active.cells == {}

    @pytest.mark.asyncio
    async def test_bad_address_is_collaborator_error(self, document):
        with pytest.raises(CollaboratorError):
            await document.read_grid("A0")

    @pytest.mark.asyncio
    async def test_selection(self, document):
        assert await document.get_selection() == "A1"
        document.select("c3:d4")
        assert await document.get_selection() == "C3:D4"


class TestWorksheets:
    """Test worksheet management."""

    @pytest.mark.asyncio
    async def test_rename_keeps_tab_order_and_active_sheet(self, document):
        await document.create_worksheet("Second")
        await document.rename_worksheet("Sheet1", "First")

        assert list(document.worksheets) == ["First", "Second"]
        assert await document.get_worksheet_name() == "First"

    @pytest.mark.asyncio
    async def test_cannot_delete_only_sheet(self, document):
        with pytest.raises(CollaboratorError, match="only worksheet"):
            await document.delete_worksheet("Sheet1")

    @pytest.mark.asyncio
    async def test_deleting_active_sheet_activates_another(self, document):
        await document.create_worksheet("Other")
        await document.delete_worksheet("Sheet1")

        assert await document.get_worksheet_name() == "Other"

    @pytest.mark.asyncio
    async def test_activate_unknown_sheet(self, document):
        with pytest.raises(CollaboratorError, match="not found"):
            document.activate("Missing")


class TestPivotTables:
    """Test computed pivot tables."""

    @pytest.mark.asyncio
    async def test_sum_by_category_and_region(self, sales_document):
        result = await sales_document.create_pivot_table(
            {
                "source_range": "A1:D4",
                "destination_range": "F1",
                "rows": ["Category"],
                "columns": ["Region"],
                "values": [{"field": "Sales", "function": "sum"}],
            }
        )

        assert result == {"name": "PivotTable1", "range": "F1:I4", "rows": 4, "columns": 4}
        assert await sales_document.read_grid("F1:I4") == [
            ["Category", "East", "West", "Total Sum of Sales"],
            ["Fruit", 10, 5, 15],
            ["Veg", 7, None, 7],
            ["Grand Total", 17, 5, 22],
        ]

    @pytest.mark.asyncio
    async def test_average_without_columns(self, sales_document):
        await sales_document.create_pivot_table(
            {
                "source_range": "A1:D4",
                "destination_range": "F1",
                "rows": ["Region"],
                "values": [{"field": "Sales", "function": "average"}],
            }
        )

        assert await sales_document.read_grid("F1:H4") == [
            ["Region", "Average of Sales", "Total Average of Sales"],
            ["East", 8.5, 8.5],
            ["West", 5, 5],
            ["Grand Total", 22 / 3, 22 / 3],
        ]

    @pytest.mark.asyncio
    async def test_unknown_field(self, sales_document):
        with pytest.raises(CollaboratorError, match="Field 'Profit' not found"):
            await sales_document.create_pivot_table(
                {
                    "source_range": "A1:D4",
                    "destination_range": "F1",
                    "rows": ["Category"],
                    "values": [{"field": "Profit", "function": "sum"}],
                }
            )

    @pytest.mark.asyncio
    async def test_source_needs_data_rows(self, document):
        with pytest.raises(CollaboratorError, match="header row"):
            await document.create_pivot_table(
                {"source_range": "A1:B1", "destination_range": "D1", "values": [{"field": "x", "function": "sum"}]}
            )


class TestRules:
    """Test recorded charts, filters and validation rules."""

    @pytest.mark.asyncio
    async def test_chart_ids_increase(self, document):
        first = await document.create_chart({"data_range": "A1:B5", "destination_range": "D1"})
        second = await document.create_chart({"data_range": "A1:B5", "destination_range": "D20"})

        assert (first["chart_id"], second["chart_id"]) == ("Chart1", "Chart2")

    @pytest.mark.asyncio
    async def test_single_filter_per_sheet(self, document):
        await document.apply_filter("A1:B5", {"A": 1})
        await document.apply_filter("A1:C9", {})

        assert document.active.filters == [{"range": "A1:C9", "criteria": {}}]

    @pytest.mark.asyncio
    async def test_formatting_merges_sections(self, document):
        await document.apply_formatting("A1", {"font": {"bold": True}})
        await document.apply_formatting("A1", {"font": {"italic": True}, "number_format": "0.0"})

        assert document.get_format("A1") == {"font": {"bold": True, "italic": True}, "number_format": "0.0"}


class TestPersistence:
    """Test snapshots and the autosave task."""

    @pytest.mark.asyncio
    async def test_snapshot_round_trip(self, tmp_path):
        path = tmp_path / "book.json"
        document = InMemoryDocument(snapshot_path=path, data=[["a", 1]])
        await document.create_worksheet("Notes")
        await document.save()

        restored = InMemoryDocument.from_snapshot(path)

        assert list(restored.worksheets) == ["Sheet1", "Notes"]
        assert await restored.read_grid("A1:B1") == [["a", 1]]
        assert json.loads(path.read_text())["active"] == "Sheet1"

    @pytest.mark.asyncio
    async def test_autosave_flushes_dirty_workbook(self, tmp_path):
        path = tmp_path / "book.json"
        document = InMemoryDocument(snapshot_path=path, autosave_interval=0.01)
        await document.start()
        try:
            await document.write_cell("A1", "saved")
            await document.request_save()
            for _ in range(100):
                if path.exists():
                    break
                await asyncio.sleep(0.01)
        finally:
            await document.close()

        assert path.exists()
        assert not document.dirty
        assert json.loads(path.read_text())["worksheets"]["Sheet1"]["cells"] == {"A1": "saved"}

    @pytest.mark.asyncio
    async def test_close_flushes_pending_changes(self, tmp_path):
        path = tmp_path / "book.json"
        document = InMemoryDocument(snapshot_path=path, autosave_interval=60)
        await document.start()
        await document.request_save()
        await document.close()

        assert path.exists()

    @pytest.mark.asyncio
    async def test_without_snapshot_path_start_is_noop(self, document):
        await document.start()
        await document.request_save()
        await document.close()

        assert not document.dirty

    @pytest.mark.asyncio
    async def test_save_requested_during_write_stays_pending(self, tmp_path, monkeypatch):
        path = tmp_path / "book.json"
        document = InMemoryDocument(snapshot_path=path, data=[[1]])
        writing, release = threading.Event(), threading.Event()
        real_write = InMemoryDocument._write_snapshot

        def blocking_write(target, snapshot):
            writing.set()
            release.wait(5)
            real_write(target, snapshot)

        monkeypatch.setattr(InMemoryDocument, "_write_snapshot", staticmethod(blocking_write))
        await document.request_save()
        saving = asyncio.create_task(document.save())
        await asyncio.to_thread(writing.wait, 5)

        await document.write_cell("B1", 2)
        await document.request_save()
        release.set()
        await saving

        assert document.dirty
        assert json.loads(path.read_text())["worksheets"]["Sheet1"]["cells"] == {"A1": 1}

        await document.save()

        assert not document.dirty
        assert json.loads(path.read_text())["worksheets"]["Sheet1"]["cells"] == {"A1": 1, "B1": 2}

    @pytest.mark.asyncio
    async def test_failed_save_keeps_workbook_dirty(self, tmp_path, monkeypatch):
        def failing_write(target, snapshot):
            raise OSError("disk full")

        document = InMemoryDocument(snapshot_path=tmp_path / "book.json")
        monkeypatch.setattr(InMemoryDocument, "_write_snapshot", staticmethod(failing_write))
        await document.request_save()

        with pytest.raises(OSError, match="disk full"):
            await document.save()

        assert document.dirty
