"""Tests for the config module."""

from pathlib import Path

from cellpilot.config import Settings, _optional_path, _parse_cors_origins


class TestParseCorsOrigins:
    """Test CORS origins parsing."""

    def test_parse_cors_origins_with_value(self, monkeypatch):
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://localhost:8080")
        assert _parse_cors_origins() == ["http://localhost:3000", "http://localhost:8080"]

    def test_parse_cors_origins_without_value(self, monkeypatch):
        monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
        assert _parse_cors_origins() == ["*"]

    def test_parse_cors_origins_empty_string(self, monkeypatch):
        """An empty value falls back to the wildcard."""
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "")
        assert _parse_cors_origins() == ["*"]


class TestOptionalPath:
    """Test optional path variables."""

    def test_set(self, monkeypatch, tmp_path):
        monkeypatch.setenv("WORKBOOK_SNAPSHOT_PATH", str(tmp_path / "book.json"))
        assert _optional_path("WORKBOOK_SNAPSHOT_PATH") == tmp_path / "book.json"

    def test_unset_or_empty(self, monkeypatch):
        monkeypatch.delenv("WORKBOOK_SNAPSHOT_PATH", raising=False)
        assert _optional_path("WORKBOOK_SNAPSHOT_PATH") is None
        monkeypatch.setenv("WORKBOOK_SNAPSHOT_PATH", "")
        assert _optional_path("WORKBOOK_SNAPSHOT_PATH") is None


class TestSettings:
    """Test Settings configuration."""

    def test_explicit_values(self, tmp_path):
        settings = Settings(
            document_backend="google",
            spreadsheet_id="sheet-123",
            worksheet_name="Data",
            database_path=tmp_path / "audit.db",
            output_max_line_width=60,
            reasoning_backend="scripted",
            enable_audit_log=True,
            port=9000,
        )

        assert settings.document_backend == "google"
        assert settings.spreadsheet_id == "sheet-123"
        assert settings.worksheet_name == "Data"
        assert settings.database_path == tmp_path / "audit.db"
        assert settings.output_max_line_width == 60
        assert settings.reasoning_backend == "scripted"
        assert settings.enable_audit_log is True
        assert settings.port == 9000

    def test_paths_are_coerced(self, tmp_path):
        settings = Settings(
            google_credentials_path=str(tmp_path / "creds.json"),
            workbook_snapshot_path=str(tmp_path / "book.json"),
        )

        assert isinstance(settings.google_credentials_path, Path)
        assert isinstance(settings.workbook_snapshot_path, Path)

    def test_fixture_settings(self, mock_settings):
        assert mock_settings.document_backend == "memory"
        assert mock_settings.autosave_interval_seconds > 0
        assert mock_settings.cors_allow_origins == ["*"]
