"""Audit trail records."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class AuditEntry(BaseModel):
    """One executed action within a recorded batch."""

    id: Optional[int] = None
    batch_id: str
    position: int
    kind: str
    ok: bool
    error: Optional[str] = None
    effect: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
