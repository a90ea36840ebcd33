"""Alignment session service.

Owns the open alignment document and runs the long operations (alignment
run, file load, file save, AI refinement) on background workers. Each
operation class has its own ``WorkerStatus``; starting an operation while
another of the same class is busy raises ``Busy``. Workers and editor calls
share one document lock; editor calls and document reads never wait for it.
"""

import copy
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .alignment.alignment_engine import AlignmentEngine
from .alignment.external_aligner import HunalignBackend
from .audit.audit_logger import AuditLogger
from .config.config_manager import Configuration
from .converters.text_converter import TextConverter, detect_format
from .editing.editor import AlignmentEditor
from .exceptions import (
    AlignmentError,
    BackendUnconfigured,
    Busy,
    ConverterFailure,
    IndexOutOfRange,
    NoDocument,
)
from .export.csv_export import export_csv
from .export.docx_export import DocxExporter
from .export.tmx import export_tmx
from .interfaces.ai_provider import CostEstimate
from .interfaces.converter import SUCCESS, ConversionRequest, ISegmentConverter
from .models.alignment import AlignmentResult
from .models.document import AlignmentDocument
from .models.enums import OperationClass, Side
from .models.segment import Segment
from .persistence.alignment_file import read_alignment, write_alignment
from .persistence.xliff_reader import read_xliff_segments
from .refinement.gateway import RefinementGateway, RefinementReport
from .refinement.prompt_builder import PromptBuilder
from .refinement.provider_factory import create_provider
from .review.view_renderer import ViewRenderer


logger = logging.getLogger(__name__)


@dataclass
class WorkerStatus:
    """Progress of the worker of one operation class."""
    busy: bool = False
    error: str = ""
    status: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"busy": self.busy, "error": self.error, "status": self.status}


@dataclass
class AlignRequest:
    """
    Input files of an alignment run.

    Attributes:
        source_file: Source-language document.
        source_lang: BCP-47 code of the source document.
        target_file: Target-language document.
        target_lang: BCP-47 code of the target document.
        alignment_file: Where the resulting alignment is saved.
        source_type: Format tag of the source (derived from the extension if empty).
        target_type: Format tag of the target.
        source_encoding: Encoding of a plain-text source.
        target_encoding: Encoding of a plain-text target.
        paragraph: Segment by paragraph instead of by sentence.
        srx: Segmentation rules file.
        catalog: XML catalog for format filters.
        xml_filter: Format-filter configuration.
    """
    source_file: str
    source_lang: str
    target_file: str
    target_lang: str
    alignment_file: str
    source_type: Optional[str] = None
    target_type: Optional[str] = None
    source_encoding: str = "utf-8"
    target_encoding: str = "utf-8"
    paragraph: bool = False
    srx: Optional[str] = None
    catalog: Optional[str] = None
    xml_filter: Optional[str] = None


@dataclass
class EditResult:
    """Outcome of one editor call."""
    applied: bool = True
    count: int = 0
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applied": self.applied,
            "count": self.count,
            "reason": self.reason,
        }


def build_engine(config: Configuration) -> AlignmentEngine:
    """Alignment engine with the external aligner configured by ``aligner.*``."""
    settings = config.aligner
    external = None
    if settings.path:
        external = HunalignBackend(settings.path, settings.dictionary, settings.timeout)
    return AlignmentEngine(external=external)


class AlignmentService:
    """
    Session object behind the HTTP API.

    Holds at most one open alignment document.
    """

    def __init__(
        self,
        config: Optional[Configuration] = None,
        engine: Optional[AlignmentEngine] = None,
        converter: Optional[ISegmentConverter] = None,
        audit_logger: Optional[AuditLogger] = None,
        provider_factory: Callable = create_provider,
        renderer: Optional[ViewRenderer] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Resolved configuration (read from the environment if omitted).
            engine: Alignment engine (built from the configuration if omitted).
            converter: Document converter (built-in text/Word converter if omitted).
            audit_logger: Audit trail; created from ``audit.databaseUrl`` when
                that key is set.
            provider_factory: Callable ``(config, prompt_builder=...)`` returning
                the language-model provider.
            renderer: HTML row renderer.
        """
        self.config = config or Configuration()
        self.engine = engine or build_engine(self.config)
        self.converter = converter or TextConverter()
        self.renderer = renderer or ViewRenderer()
        self._provider_factory = provider_factory

        if audit_logger is None and self.config.audit_database_url:
            audit_logger = AuditLogger(database_url=self.config.audit_database_url)
        self.audit = audit_logger

        self.document: Optional[AlignmentDocument] = None
        self.editor: Optional[AlignmentEditor] = None
        self.last_result: Optional[AlignmentResult] = None
        self.last_report: Optional[RefinementReport] = None

        self._document_lock = threading.RLock()
        self._status_lock = threading.Lock()
        self._status: Dict[OperationClass, WorkerStatus] = {
            operation: WorkerStatus() for operation in OperationClass
        }
        self._threads: Dict[OperationClass, threading.Thread] = {}

    # =========================================================================
    # Workers
    # =========================================================================

    def status(self, operation: OperationClass) -> WorkerStatus:
        """Snapshot of an operation's worker status."""
        with self._status_lock:
            return copy.copy(self._status[operation])

    def wait(self, operation: OperationClass, timeout: Optional[float] = None) -> WorkerStatus:
        """
        Block until the worker of ``operation`` finishes.

        Args:
            operation: Operation class to wait for.
            timeout: Seconds to wait at most.

        Returns:
            The status after waiting (still busy if the timeout expired).
        """
        thread = self._threads.get(operation)
        if thread is not None:
            thread.join(timeout)
        return self.status(operation)

    def _start(self, operation: OperationClass, target: Callable, *args) -> WorkerStatus:
        with self._status_lock:
            state = self._status[operation]
            if state.busy:
                raise Busy(
                    message=f"A {operation.value} operation is already running",
                    operation=operation.value,
                )
            state.busy = True
            state.error = ""
            state.status = ""
            thread = threading.Thread(
                target=self._run_worker,
                args=(operation, target, args),
                name=f"tm-alignment-{operation.value}",
                daemon=True,
            )
            self._threads[operation] = thread
            snapshot = copy.copy(state)
        thread.start()
        return snapshot

    def _run_worker(self, operation: OperationClass, target: Callable, args: tuple) -> None:
        try:
            with self._document_lock:
                target(*args)
        except AlignmentError as e:
            logger.warning(f"{operation.value} failed: {e}")
            self._set_error(operation, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error during {operation.value}")
            self._set_error(operation, str(e))
        finally:
            with self._status_lock:
                self._status[operation].busy = False
                self._status[operation].status = ""

    def _set_status(self, operation: OperationClass, text: str) -> None:
        logger.info(text)
        with self._status_lock:
            self._status[operation].status = text

    def _set_error(self, operation: OperationClass, text: str) -> None:
        with self._status_lock:
            self._status[operation].error = text

    # =========================================================================
    # Alignment run
    # =========================================================================

    def align_files(self, request: AlignRequest) -> WorkerStatus:
        """Convert both documents, align them and save the alignment file."""
        return self._start(OperationClass.ALIGN, self._align_files, request)

    def _align_files(self, request: AlignRequest) -> None:
        self._set_status(OperationClass.ALIGN, "Converting source file")
        sources = self._convert(
            request.source_file, request.source_lang, request.source_type,
            request.source_encoding, request,
        )
        self._set_status(OperationClass.ALIGN, "Converting target file")
        targets = self._convert(
            request.target_file, request.target_lang, request.target_type,
            request.target_encoding, request,
        )

        self._set_status(OperationClass.ALIGN, "Aligning segments")
        document = AlignmentDocument(
            src_lang=request.source_lang,
            tgt_lang=request.target_lang,
            sources=sources,
            targets=targets,
            file_path=request.alignment_file,
        )
        result = self.engine.align_document(document)
        logger.info(
            f"Alignment complete: {result.total_links} pairs, "
            f"{result.average_confidence * 100:.1f}% confidence, "
            f"{len(result.uncertain_links)} uncertain"
        )
        write_alignment(document)

        self._set_document(document)
        self.last_result = result
        self._audit(
            "log_alignment_completed",
            document_id=document.id,
            method=result.method,
            total_pairs=result.total_links,
            uncertain_pairs=len(result.uncertain_links),
            overall_confidence=result.average_confidence,
        )

    def _convert(
        self,
        path: str,
        language: str,
        format_tag: Optional[str],
        encoding: str,
        request: AlignRequest,
    ) -> List[Segment]:
        xliff_fd, xliff_path = tempfile.mkstemp(suffix=".xlf")
        skeleton_fd, skeleton_path = tempfile.mkstemp(suffix=".skl")
        os.close(xliff_fd)
        os.close(skeleton_fd)
        try:
            outcome = self.converter.convert(ConversionRequest(
                source_path=path,
                source_lang=language,
                format_tag=format_tag or detect_format(path),
                xliff_path=xliff_path,
                skeleton_path=skeleton_path,
                encoding=encoding,
                paragraph_mode=request.paragraph,
                srx_path=request.srx,
                catalog_path=request.catalog,
                filter_config_path=request.xml_filter,
            ))
            if outcome != SUCCESS:
                raise ConverterFailure(message=outcome, file_path=path)
            return read_xliff_segments(xliff_path)
        finally:
            for temp in (xliff_path, skeleton_path):
                if os.path.exists(temp):
                    os.remove(temp)

    # =========================================================================
    # Files
    # =========================================================================

    def open_file(self, path: str) -> WorkerStatus:
        """Load an alignment file in the background."""
        return self._start(OperationClass.LOAD, self._open_file, path)

    def _open_file(self, path: str) -> None:
        self._set_status(OperationClass.LOAD, f"Loading {path}")
        document = read_alignment(path)
        self._set_document(document)
        self.last_result = None
        self._audit(
            "log_document_loaded",
            document_id=document.id,
            file_path=path,
            source_count=len(document.sources),
            target_count=len(document.targets),
        )

    def save_file(self, path: Optional[str] = None) -> WorkerStatus:
        """Save the open alignment in the background, optionally under a new name."""
        self._require_document()
        return self._start(OperationClass.SAVE, self._save_file, path)

    def _save_file(self, path: Optional[str]) -> None:
        document = self._require_document()
        self._set_status(OperationClass.SAVE, "Saving alignment")
        written = write_alignment(document, path)
        self._audit("log_document_saved", document_id=document.id, file_path=written)

    def close_file(self) -> None:
        with self._editing():
            self.document = None
            self.editor = None
            self.last_result = None
            self.last_report = None

    def rename(self, path: str) -> None:
        """Change the file the open alignment is saved to."""
        with self._editing():
            self._require_document().file_path = path

    def file_info(self) -> Dict[str, Any]:
        with self._editing():
            document = self._require_document()
            return {
                "file": document.file_path,
                "srcLang": document.src_lang,
                "tgtLang": document.tgt_lang,
                "srcRows": len(document.sources),
                "tgtRows": len(document.targets),
            }

    def _set_document(self, document: AlignmentDocument) -> None:
        self.document = document
        self.editor = AlignmentEditor(document)
        self.last_report = None

    def _require_document(self) -> AlignmentDocument:
        if self.document is None:
            raise NoDocument(message="No alignment is open")
        return self.document

    # =========================================================================
    # AI refinement
    # =========================================================================

    def _gateway(self, document: AlignmentDocument) -> RefinementGateway:
        builder = PromptBuilder(
            source_language=document.src_lang or "source language",
            target_language=document.tgt_lang or "target language",
        )
        return RefinementGateway(self._provider_factory(self.config, prompt_builder=builder))

    def estimate_ai_cost(self) -> CostEstimate:
        """Estimate the cost of refining the open alignment."""
        with self._editing():
            document = self._require_document()
            return self._gateway(document).estimate(document)

    def refine(self) -> WorkerStatus:
        """
        Start AI refinement of the uncertain rows.

        Raises:
            NoDocument: If no alignment is open.
            BackendUnconfigured: If the selected provider has no API key.
            Busy: If a refinement is already running.
        """
        document = self._require_document()
        gateway = self._gateway(document)
        if not gateway.provider.is_configured():
            raise BackendUnconfigured(
                message=f"{gateway.provider.provider_name} API key is not configured",
            )
        return self._start(OperationClass.REFINE, self._refine, gateway)

    def _refine(self, gateway: RefinementGateway) -> None:
        document = self._require_document()
        self._set_status(OperationClass.REFINE, f"Refining with {gateway.provider.provider_name}")
        report = gateway.refine(document)
        self.last_report = report
        self._audit(
            "log_refinement_applied",
            document_id=document.id,
            provider=report.provider,
            model=report.model,
            refined_count=report.refined_count,
            swapped_count=report.swapped_count,
            estimated_cost=report.estimate.estimated_cost if report.estimate else None,
        )

    # =========================================================================
    # Editing
    # =========================================================================

    @contextmanager
    def _editing(self):
        if not self._document_lock.acquire(blocking=False):
            raise Busy(message="The alignment is being processed", operation="edit")
        try:
            yield
        finally:
            self._document_lock.release()

    def _edit(self, operation: str, action: Callable[[AlignmentEditor], Any], side: Optional[Side] = None,
              index: Optional[int] = None, **details) -> EditResult:
        with self._editing():
            document = self._require_document()
            try:
                outcome = action(self.editor)
            except IndexOutOfRange as e:
                logger.warning(f"{operation} not applied: {e.message}")
                return EditResult(applied=False, reason=e.message)
            count = outcome if isinstance(outcome, int) and not isinstance(outcome, bool) else 0
            self._audit(
                "log_segment_edited",
                document_id=document.id,
                operation=operation,
                side=side.value if side else None,
                index=index,
                details=dict(details, count=count) if count else details,
            )
            return EditResult(applied=True, count=count)

    def remove_segment(self, side: Side, index: int) -> EditResult:
        return self._edit("remove", lambda e: e.remove(side, index), side, index)

    def segment_up(self, side: Side, index: int) -> EditResult:
        return self._edit("segment_up", lambda e: e.segment_up(side, index), side, index)

    def segment_down(self, side: Side, index: int) -> EditResult:
        return self._edit("segment_down", lambda e: e.segment_down(side, index), side, index)

    def merge_next(self, side: Side, index: int) -> EditResult:
        return self._edit("merge_next", lambda e: e.merge_next(side, index), side, index)

    def split_segment(self, side: Side, index: int, prefix: str, suffix: str) -> EditResult:
        return self._edit("split", lambda e: e.split(side, index, prefix, suffix), side, index)

    def save_edit(self, side: Side, index: int, markup: str) -> EditResult:
        return self._edit("save_edit", lambda e: e.save_edit(side, index, markup), side, index)

    def replace_text(self, side: Side, search: str, replacement: str, regex: bool = False) -> EditResult:
        return self._edit(
            "replace_text",
            lambda e: e.replace_text(side, search, replacement, regex),
            side,
            search=search,
            regex=regex,
        )

    def remove_duplicates(self) -> EditResult:
        return self._edit("remove_duplicates", lambda e: e.remove_duplicates())

    def remove_tags(self, side: Optional[Side] = None) -> EditResult:
        return self._edit("remove_tags", lambda e: e.remove_tags(side), side)

    def set_languages(self, src_lang: str, tgt_lang: str) -> EditResult:
        return self._edit(
            "set_languages",
            lambda e: e.set_languages(src_lang, tgt_lang),
            src_lang=src_lang,
            tgt_lang=tgt_lang,
        )

    def toggle_manual_mark(self, segment_id: int) -> bool:
        """Flip the review mark of a row and return its new value."""
        with self._editing():
            return self._require_document().ledger.toggle_manual_mark(segment_id)

    # =========================================================================
    # Views and exports
    # =========================================================================

    def get_rows(self, start: int = 0, count: int = 100) -> Dict[str, Any]:
        with self._editing():
            return self.renderer.render_rows(self._require_document(), start, count)

    def uncertain_ids(self) -> List[int]:
        with self._editing():
            return self._require_document().uncertain_ids()

    def stats(self) -> Dict[str, Any]:
        """Ledger and last-run statistics of the open alignment."""
        with self._editing():
            document = self._require_document()
            total = document.row_count()
            uncertain = len(document.uncertain_ids())
            return {
                "totalRows": total,
                "uncertainRows": uncertain,
                "aiReviewedCount": document.ledger.ai_reviewed_count(),
                "overallConfidence": (total - uncertain) / total if total else 0.0,
                "lastResult": self.last_result.to_dict(include_links=False) if self.last_result else None,
                "lastRefinement": self.last_report.to_dict() if self.last_report else None,
            }

    def export(self, export_format: str, path: str, show_confidence: bool = False) -> int:
        """
        Export the open alignment.

        Args:
            export_format: ``tmx``, ``csv`` or ``docx``.
            path: Output file.
            show_confidence: Add a confidence column to Word exports.

        Returns:
            Number of rows exported.
        """
        export_format = export_format.lower()
        if export_format not in ("tmx", "csv", "docx"):
            raise ValueError(f"Unsupported export format: {export_format}")
        with self._editing():
            document = self._require_document()
            if export_format == "tmx":
                count = export_tmx(document, path)
            elif export_format == "csv":
                count = export_csv(document, path)
            else:
                count = DocxExporter(show_confidence=show_confidence).export(document, path)
        self._audit(
            "log_export_completed",
            document_id=document.id,
            export_format=export_format,
            file_path=path,
        )
        return count

    # =========================================================================
    # Audit
    # =========================================================================

    def _audit(self, method: str, /, **kwargs) -> None:
        if self.audit is None:
            return
        try:
            getattr(self.audit, method)(**kwargs)
        except SQLAlchemyError as e:
            logger.warning(f"Audit write failed ({method}): {e}")

    def close(self) -> None:
        """Release the audit database."""
        if self.audit is not None:
            self.audit.close()

