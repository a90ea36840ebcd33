"""Audit logger interface for the alignment system."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class AuditEventType(Enum):
    """Types of audit events tracked by the system."""
    DOCUMENT_LOADED = "document_loaded"
    DOCUMENT_SAVED = "document_saved"
    ALIGNMENT_COMPLETED = "alignment_completed"
    SEGMENT_EDITED = "segment_edited"
    REFINEMENT_APPLIED = "refinement_applied"
    EXPORT_COMPLETED = "export_completed"


@dataclass
class AuditEvent:
    """
    Audit event record.

    Represents a single auditable event on an alignment document.
    """
    id: str
    event_type: AuditEventType
    timestamp: datetime
    document_id: Optional[str] = None
    user_id: Optional[str] = None
    details: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.details is None:
            self.details = {}


class IAuditLogger(ABC):
    """
    Abstract interface for audit logging.

    Implementations record and query events for traceability.
    """

    @abstractmethod
    def log_event(self, event: AuditEvent) -> None:
        """
        Record an audit event.

        Args:
            event: The audit event to record.
        """
        pass

    @abstractmethod
    def get_events(
        self,
        document_id: Optional[str] = None,
        event_type: Optional[AuditEventType] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[AuditEvent]:
        """
        Query audit events with optional filters.

        Args:
            document_id: Filter by document ID.
            event_type: Filter by event type.
            start_time: Filter events after this time.
            end_time: Filter events before this time.

        Returns:
            List of matching audit events, newest first.
        """
        pass

    @abstractmethod
    def export_log(self, document_id: str, format: str = "json") -> str:
        """
        Export the audit trail of a document.

        Args:
            document_id: The document ID to export logs for.
            format: Export format ("json" or "csv").

        Returns:
            Exported log content as a string.

        Raises:
            ValueError: If format is not supported.
        """
        pass
