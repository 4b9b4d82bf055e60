"""Configuration management for CellPilot."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("CORS_ALLOW_ORIGINS")
    if cors_env:
        return cors_env.split(",")
    return ["*"]


def _optional_path(name: str) -> Optional[Path]:
    value = os.getenv(name)
    return Path(value) if value else None


class Settings(BaseModel):
    """Application settings."""

    # Document backend ('memory' or 'google')
    document_backend: str = os.getenv("DOCUMENT_BACKEND", "memory")
    worksheet_name: str = os.getenv("WORKSHEET_NAME", "Sheet1")
    default_selection: str = os.getenv("DEFAULT_SELECTION", "A1")

    # Google Sheets API credentials (required when DOCUMENT_BACKEND=google)
    spreadsheet_id: Optional[str] = os.getenv("SPREADSHEET_ID")
    google_credentials_path: Path = Path(os.getenv("GOOGLE_CREDENTIALS_PATH", "credentials.json"))
    google_token_path: Path = Path(os.getenv("GOOGLE_TOKEN_PATH", "token.json"))

    # In-memory document snapshot and autosave
    workbook_snapshot_path: Optional[Path] = _optional_path("WORKBOOK_SNAPSHOT_PATH")
    autosave_interval_seconds: float = float(os.getenv("AUTOSAVE_INTERVAL_SECONDS", "5.0"))
    save_after_write: bool = os.getenv("SAVE_AFTER_WRITE", "true").lower() == "true"

    # Output formatting
    output_max_line_width: int = int(os.getenv("OUTPUT_MAX_LINE_WIDTH", "80"))

    # Reasoning backend used for requests the local rules do not recognize ('none' or 'scripted')
    reasoning_backend: str = os.getenv("REASONING_BACKEND", "none")

    # Audit trail persistence
    enable_audit_log: bool = os.getenv("ENABLE_AUDIT_LOG", "false").lower() == "true"
    database_path: Path = Path(os.getenv("DATABASE_PATH", "data/cellpilot.db"))

    # Server settings
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS settings (comma-separated list of allowed origins, or * for all)
    cors_allow_origins: list[str] = _parse_cors_origins()


settings = Settings()
