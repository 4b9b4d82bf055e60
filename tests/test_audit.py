"""Tests for the SQLite audit trail."""

import pytest

from cellpilot.audit import AuditTrail
from cellpilot.executor import ActionExecutor
from cellpilot.protocol import ErrorCategory, ErrorInfo, ExecutionOutcome


class TestAuditTrail:
    """Test recording and listing executed actions."""

    @pytest.mark.asyncio
    async def test_record_and_list(self, audit_trail):
        outcomes = [
            ExecutionOutcome(
                index=0,
                action={"kind": "write-cell", "payload": {"address": "A1", "value": 1}},
                ok=True,
                effect={"applied": True},
            ),
            ExecutionOutcome(
                index=1,
                action={"kind": "bogus"},
                ok=False,
                error=ErrorInfo(category=ErrorCategory.VALIDATION, message="Unknown action kind"),
            ),
        ]

        batch_id = await audit_trail.record_batch(outcomes)
        entries = await audit_trail.recent()

        assert [e.position for e in entries] == [1, 0]
        assert {e.batch_id for e in entries} == {batch_id}
        assert entries[0].kind == "bogus"
        assert entries[0].ok is False
        assert entries[0].error == "Unknown action kind"
        assert entries[1].effect == {"applied": True}

    @pytest.mark.asyncio
    async def test_limit_and_newest_first(self, audit_trail):
        for index in range(3):
            await audit_trail.record_batch(
                [ExecutionOutcome(index=0, action={"kind": f"k{index}"}, ok=True)]
            )

        entries = await audit_trail.recent(limit=2)

        assert [e.kind for e in entries] == ["k2", "k1"]

    @pytest.mark.asyncio
    async def test_executor_records_batches(self, document, audit_trail):
        executor = ActionExecutor(document, audit_trail=audit_trail)

        await executor.execute_all([{"kind": "write-cell", "payload": {"address": "B2", "value": "x"}}])

        entries = await audit_trail.recent()
        assert len(entries) == 1
        assert entries[0].kind == "write-cell"
        assert entries[0].effect == {"applied": True, "address": "B2", "value": "x"}

    @pytest.mark.asyncio
    async def test_requires_initialize(self, tmp_path):
        trail = AuditTrail(tmp_path / "audit.db")

        with pytest.raises(RuntimeError):
            await trail.recent()
