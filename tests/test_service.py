"""Tests for the SheetAgent caller-facing API."""

from unittest.mock import AsyncMock

import pytest

from cellpilot.agent import ScriptedBackend, SheetAgent, create_agent, create_document
from cellpilot.intent import HELP_MESSAGE
from cellpilot.protocol import ActionKind
from cellpilot.sheets import InMemoryDocument


class TestResolveAndRespond:
    """Test the combined resolve-and-execute entry point."""

    @pytest.mark.asyncio
    async def test_cell_write_scenario(self, agent, document):
        envelope = await agent.resolve_and_respond("Write value 42 to cell A1")

        assert envelope.success
        assert "A1" in envelope.message and "42" in envelope.message
        assert [a.kind for a in envelope.actions] == [ActionKind.WRITE_CELL]
        assert await document.read_grid("A1") == [["42"]]
        assert envelope.metadata.outcomes[0]["ok"] is True

    @pytest.mark.asyncio
    async def test_range_write_then_read(self, agent):
        await agent.resolve_and_respond("Write range A1:B3 values [[1,2],[3,4],[5,6]]")

        envelope = await agent.resolve_and_respond("Read the current worksheet")

        assert envelope.success
        assert envelope.actions == []
        assert envelope.body == "Row 1: A1=1, B1=2\nRow 2: A2=3, B2=4\nRow 3: A3=5, B3=6"

    @pytest.mark.asyncio
    async def test_failed_action_is_reported(self, agent, document):
        document.write_cell = AsyncMock(side_effect=RuntimeError("host unavailable"))

        envelope = await agent.resolve_and_respond("Write value 1 to cell A1")

        assert not envelope.success
        assert envelope.message.startswith("1 of 1 action(s) failed.")
        assert envelope.metadata.errors == ["Action 1 (write-cell): host unavailable"]

    @pytest.mark.asyncio
    async def test_unrecognized_without_backend(self, agent):
        envelope = await agent.resolve_and_respond("hello there")

        assert envelope.message == HELP_MESSAGE
        assert envelope.actions == []
        assert envelope.metadata.success is False

    @pytest.mark.asyncio
    async def test_unrecognized_goes_to_backend(self, document):
        agent = SheetAgent(document, backend=ScriptedBackend())

        envelope = await agent.resolve_and_respond("insert a formula for totals")

        assert envelope.success
        assert [a.kind for a in envelope.actions] == [ActionKind.INSERT_FORMULA]
        assert await document.read_grid("B10") == [["=SUM(B2:B9)"]]

    @pytest.mark.asyncio
    async def test_reads_never_reach_backend(self, document):
        backend = AsyncMock()
        agent = SheetAgent(document, backend=backend)

        await agent.resolve_and_respond("show the worksheet")

        backend.respond.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_backend_failure(self, document):
        backend = AsyncMock()
        backend.respond.side_effect = ConnectionError("backend down")
        agent = SheetAgent(document, backend=backend)

        envelope = await agent.resolve_and_respond("hello there")

        assert not envelope.success
        assert "backend down" in envelope.message


class TestExecuteEnvelope:
    """Test executing backend-shaped envelopes without re-resolving."""

    @pytest.mark.asyncio
    async def test_mixed_valid_and_invalid_actions(self, agent, document):
        envelope = await agent.execute_envelope(
            {
                "message": "Working on it",
                "actions": [
                    {"type": "WRITE_CELL", "data": {"address": "A1", "value": "x"}},
                    {"type": "SPLIT_CELLS", "data": {}},
                    {"type": "WRITE_CELL", "data": {"address": "A2", "value": "y"}},
                ],
                "unknownField": True,
            }
        )

        assert not envelope.success
        assert len(envelope.metadata.errors) == 1
        assert envelope.metadata.errors[0].startswith("Action 2 (SPLIT_CELLS)")
        assert await document.read_grid("A1:A2") == [["x"], ["y"]]

    @pytest.mark.asyncio
    async def test_message_only_envelope(self, agent):
        envelope = await agent.execute_envelope({"message": "Nothing to do"})

        assert envelope.success
        assert envelope.message == "Nothing to do"

    @pytest.mark.asyncio
    async def test_actions_must_be_a_list(self, agent):
        envelope = await agent.execute_envelope({"message": "bad", "actions": {"type": "WRITE_CELL"}})

        assert not envelope.success

    @pytest.mark.asyncio
    async def test_non_object_envelope(self, agent):
        envelope = await agent.execute_envelope(["not", "an", "envelope"])

        assert not envelope.success


class TestLifecycle:
    """Test agent startup and shutdown."""

    @pytest.mark.asyncio
    async def test_initialize_and_shutdown(self):
        document = AsyncMock(spec=InMemoryDocument)
        agent = SheetAgent(document)

        await agent.initialize()
        await agent.shutdown()

        document.start.assert_awaited_once()
        document.close.assert_awaited_once()


class TestFactories:
    """Test wiring from settings."""

    def test_create_memory_document(self, mock_settings):
        document = create_document(mock_settings)

        assert isinstance(document, InMemoryDocument)
        assert document.active_name == "Sheet1"

    def test_google_requires_spreadsheet_id(self, mock_settings):
        config = mock_settings.model_copy(update={"document_backend": "google", "spreadsheet_id": None})

        with pytest.raises(ValueError, match="SPREADSHEET_ID"):
            create_document(config)

    def test_unknown_backend(self, mock_settings):
        config = mock_settings.model_copy(update={"document_backend": "excel"})

        with pytest.raises(ValueError, match="Unknown document backend"):
            create_document(config)

    @pytest.mark.asyncio
    async def test_snapshot_is_loaded(self, mock_settings, tmp_path):
        path = tmp_path / "book.json"
        saved = InMemoryDocument(snapshot_path=path, data=[["kept"]])
        await saved.save()
        config = mock_settings.model_copy(update={"workbook_snapshot_path": path})

        document = create_document(config)

        assert await document.read_grid("A1") == [["kept"]]

    def test_create_agent_uses_settings(self, mock_settings):
        config = mock_settings.model_copy(
            update={"output_max_line_width": 40, "reasoning_backend": "scripted", "enable_audit_log": True}
        )

        agent = create_agent(config)

        assert agent.resolver.formatter.max_width == 40
        assert isinstance(agent.backend, ScriptedBackend)
        assert agent.audit_trail is not None
        assert agent.audit_trail.db_path == mock_settings.database_path
