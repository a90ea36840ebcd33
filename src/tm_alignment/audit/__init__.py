"""Audit trail for alignment documents."""

from .audit_logger import AuditLogger
from .database import DatabaseManager
from .models import AuditEventModel, Base

__all__ = [
    "AuditLogger",
    "DatabaseManager",
    "AuditEventModel",
    "Base",
]
