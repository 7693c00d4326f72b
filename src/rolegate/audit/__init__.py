"""Audit trail package for rolegate.

Provides the in-memory append-only recorder and its JSONL file sink.
"""
from __future__ import annotations

from rolegate.audit.logger import AuditLogger
from rolegate.audit.recorder import AuditCategory, AuditEntry, AuditRecorder

__all__ = ["AuditCategory", "AuditEntry", "AuditLogger", "AuditRecorder"]
