"""Audit logger implementation for the alignment service."""

import csv
import io
import json
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, select

from ..interfaces.audit import AuditEvent, AuditEventType, IAuditLogger
from .database import DatabaseManager
from .models import AuditEventModel


class AuditLogger(IAuditLogger):
    """
    Audit logger backed by a SQLAlchemy database.

    Records alignment runs, file operations, edits, refinements and exports
    for a document, and exports the trail as JSON or CSV.
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        database_url: Optional[str] = None,
    ):
        """
        Initialize the audit logger.

        Args:
            db_manager: Optional DatabaseManager instance. If not provided,
                       a new one is created from ``database_url``.
            database_url: Database URL for creating a new DatabaseManager.
        """
        if db_manager is not None:
            self._db_manager = db_manager
            self._owns_db_manager = False
        else:
            if not database_url:
                raise ValueError("Either db_manager or database_url is required")
            self._db_manager = DatabaseManager(database_url=database_url)
            self._owns_db_manager = True
        self._db_manager.init_database()

    def _to_model(self, event: AuditEvent) -> AuditEventModel:
        """Convert AuditEvent dataclass to SQLAlchemy model."""
        return AuditEventModel(
            id=event.id,
            event_type=event.event_type.value if isinstance(event.event_type, AuditEventType) else event.event_type,
            timestamp=event.timestamp,
            document_id=event.document_id,
            user_id=event.user_id,
            details=event.details or {},
        )

    def _from_model(self, model: AuditEventModel) -> AuditEvent:
        """Convert SQLAlchemy model to AuditEvent dataclass."""
        return AuditEvent(
            id=model.id,
            event_type=AuditEventType(model.event_type),
            timestamp=model.timestamp,
            document_id=model.document_id,
            user_id=model.user_id,
            details=model.details or {},
        )

    def log_event(self, event: AuditEvent) -> None:
        """
        Record an audit event to the database.

        Args:
            event: The audit event to record.
        """
        model = self._to_model(event)
        with self._db_manager.get_session() as session:
            session.add(model)

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
        with self._db_manager.get_session() as session:
            query = select(AuditEventModel)

            conditions = []
            if document_id:
                conditions.append(AuditEventModel.document_id == document_id)
            if event_type:
                event_type_value = event_type.value if isinstance(event_type, AuditEventType) else event_type
                conditions.append(AuditEventModel.event_type == event_type_value)
            if start_time:
                conditions.append(AuditEventModel.timestamp >= start_time)
            if end_time:
                conditions.append(AuditEventModel.timestamp <= end_time)

            if conditions:
                query = query.where(and_(*conditions))

            query = query.order_by(AuditEventModel.timestamp.desc())

            result = session.execute(query)
            models = result.scalars().all()

            return [self._from_model(m) for m in models]

    def export_log(
        self,
        document_id: str,
        format: str = "json",
    ) -> str:
        """
        Export audit log for a document.

        Args:
            document_id: The document ID to export logs for.
            format: Export format ("json" or "csv").

        Returns:
            Exported log content as a string.

        Raises:
            ValueError: If format is not supported.
        """
        if format not in ("json", "csv"):
            raise ValueError(f"Unsupported export format: {format}. Use 'json' or 'csv'.")

        events = self.get_events(document_id=document_id)

        if format == "json":
            return self._export_json(events)
        else:
            return self._export_csv(events)

    def _export_json(self, events: List[AuditEvent]) -> str:
        """Export events to JSON with a summary of the alignment runs."""
        runs = [
            e.details for e in events
            if e.event_type == AuditEventType.ALIGNMENT_COMPLETED
        ]
        confidences = [
            run["overall_confidence"] for run in runs
            if run.get("overall_confidence") is not None
        ]

        data = {
            "export_timestamp": datetime.utcnow().isoformat(),
            "event_count": len(events),
            "alignment_summary": {
                "runs": len(runs),
                "average_confidence": sum(confidences) / len(confidences) if confidences else 0,
                "latest_method": runs[0].get("method") if runs else None,
            },
            "events": [
                {
                    "id": e.id,
                    "event_type": e.event_type.value,
                    "timestamp": e.timestamp.isoformat() if e.timestamp else None,
                    "document_id": e.document_id,
                    "user_id": e.user_id,
                    "details": e.details,
                }
                for e in events
            ],
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def _export_csv(self, events: List[AuditEvent]) -> str:
        """Export events to CSV format."""
        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow(["id", "event_type", "timestamp", "document_id", "user_id", "details"])

        for e in events:
            writer.writerow([
                e.id,
                e.event_type.value,
                e.timestamp.isoformat() if e.timestamp else "",
                e.document_id or "",
                e.user_id or "",
                json.dumps(e.details, ensure_ascii=False),
            ])

        return output.getvalue()

    def close(self) -> None:
        """Release the database engine if this logger created it."""
        if self._owns_db_manager:
            self._db_manager.close()

    # ========== Convenience Logging Methods ==========

    def _record(
        self,
        event_type: AuditEventType,
        document_id: Optional[str],
        details: Dict[str, Any],
        user_id: Optional[str] = None,
    ) -> None:
        self.log_event(AuditEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            timestamp=datetime.utcnow(),
            document_id=document_id,
            user_id=user_id,
            details=details,
        ))

    def log_document_loaded(
        self,
        document_id: str,
        file_path: str,
        source_count: int,
        target_count: int,
        user_id: Optional[str] = None,
    ) -> None:
        """Log an alignment file being opened."""
        self._record(AuditEventType.DOCUMENT_LOADED, document_id, {
            "file_path": file_path,
            "source_count": source_count,
            "target_count": target_count,
        }, user_id)

    def log_document_saved(
        self,
        document_id: str,
        file_path: str,
        user_id: Optional[str] = None,
    ) -> None:
        """Log an alignment file being written."""
        self._record(AuditEventType.DOCUMENT_SAVED, document_id, {
            "file_path": file_path,
        }, user_id)

    def log_alignment_completed(
        self,
        document_id: str,
        method: str,
        total_pairs: int,
        uncertain_pairs: int,
        overall_confidence: float,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a finished alignment run."""
        self._record(AuditEventType.ALIGNMENT_COMPLETED, document_id, {
            "method": method,
            "total_pairs": total_pairs,
            "uncertain_pairs": uncertain_pairs,
            "overall_confidence": overall_confidence,
        }, user_id)

    def log_segment_edited(
        self,
        document_id: str,
        operation: str,
        side: Optional[str] = None,
        index: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Log one editor operation."""
        payload = {"operation": operation, "side": side, "index": index}
        payload.update(details or {})
        self._record(AuditEventType.SEGMENT_EDITED, document_id, payload, user_id)

    def log_refinement_applied(
        self,
        document_id: str,
        provider: str,
        model: str,
        refined_count: int,
        swapped_count: int,
        estimated_cost: Optional[float] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a language-model refinement run."""
        self._record(AuditEventType.REFINEMENT_APPLIED, document_id, {
            "provider": provider,
            "model": model,
            "refined_count": refined_count,
            "swapped_count": swapped_count,
            "estimated_cost": estimated_cost,
        }, user_id)

    def log_export_completed(
        self,
        document_id: str,
        export_format: str,
        file_path: str,
        user_id: Optional[str] = None,
    ) -> None:
        """Log an export to TMX, CSV or DOCX."""
        self._record(AuditEventType.EXPORT_COMPLETED, document_id, {
            "format": export_format,
            "file_path": file_path,
        }, user_id)
