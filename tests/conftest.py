"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from cellpilot.agent import SheetAgent
from cellpilot.audit import AuditTrail
from cellpilot.config import Settings
from cellpilot.executor import ActionExecutor
from cellpilot.intent import IntentResolver
from cellpilot.output import OutputFormatter
from cellpilot.sheets import InMemoryDocument


class GridOnlyDocument(InMemoryDocument):
    """In-memory document that declares no optional capabilities."""

    capabilities = frozenset()


SALES_DATA = [
    ["Category", "Region", "Product", "Sales"],
    ["Fruit", "East", "Apple", 10],
    ["Fruit", "West", "Pear", 5],
    ["Veg", "East", "Leek", 7],
]


@pytest.fixture
def mock_settings(tmp_path: Path) -> Settings:
    """Create settings with test values."""
    return Settings(
        document_backend="memory",
        worksheet_name="Sheet1",
        default_selection="A1",
        google_credentials_path=tmp_path / "credentials.json",
        google_token_path=tmp_path / "token.json",
        workbook_snapshot_path=None,
        save_after_write=True,
        output_max_line_width=80,
        reasoning_backend="none",
        enable_audit_log=False,
        database_path=tmp_path / "test.db",
        host="127.0.0.1",
        port=8000,
        debug=False,
        cors_allow_origins=["*"],
    )


@pytest.fixture
def document() -> InMemoryDocument:
    """Empty in-memory workbook with a single 'Sheet1'."""
    return InMemoryDocument()


@pytest.fixture
def sales_document() -> InMemoryDocument:
    """Workbook pre-filled with a small sales table at A1:D4."""
    return InMemoryDocument(data=SALES_DATA)


@pytest.fixture
def grid_only_document() -> GridOnlyDocument:
    return GridOnlyDocument()


@pytest.fixture
def formatter() -> OutputFormatter:
    return OutputFormatter()


@pytest.fixture
def resolver(document) -> IntentResolver:
    return IntentResolver(document)


@pytest.fixture
def executor(document) -> ActionExecutor:
    return ActionExecutor(document)


@pytest.fixture
def agent(document) -> SheetAgent:
    return SheetAgent(document)


@pytest_asyncio.fixture
async def audit_trail(tmp_path: Path) -> AsyncGenerator[AuditTrail, None]:
    """Audit trail backed by a temporary SQLite file."""
    trail = AuditTrail(tmp_path / "audit.db")
    await trail.initialize()
    yield trail
    await trail.close()


# Configure pytest-asyncio
def pytest_configure(config):
    """Register the asyncio marker used by async tests."""
    config.addinivalue_line("markers", "asyncio: mark test as async")
