"""Persisted record of executed actions."""

from .models import AuditEntry
from .store import AuditTrail

__all__ = ["AuditEntry", "AuditTrail"]
