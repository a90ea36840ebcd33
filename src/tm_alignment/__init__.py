"""
TM Alignment

Bilingual sentence alignment for translation memories: Gale-Church length
alignment with an optional external aligner, a per-row confidence ledger,
manual editing, language-model refinement and TMX/CSV/Word export.
"""

from .version import VERSION as __version__

# Models first; the quality ledger depends on them.
from .models import (
    AlignmentDocument,
    AlignmentLink,
    AlignmentMethod,
    AlignmentResult,
    ConfidenceLevel,
    LinkShape,
    OperationClass,
    Segment,
    SegmentInfo,
    Side,
)
from .quality import SegmentLedger, confidence_color
from .exceptions import (
    AlignmentError,
    BackendError,
    BackendUnavailable,
    BackendUnconfigured,
    Busy,
    ConverterFailure,
    HttpError,
    IndexOutOfRange,
    InvalidPattern,
    IoError,
    MalformedSegmentTree,
    NoDocument,
    ResponseParseError,
)
from .alignment import AlignmentEngine, GaleChurchAligner, HunalignBackend, HybridArbitrator
from .editing import AlignmentEditor
from .refinement import ClaudeProvider, OpenAIProvider, RefinementGateway, create_provider
from .audit import AuditLogger, DatabaseManager
from .config import Configuration, ConfigurationError, ValidationResult
from .service import AlignmentService, AlignRequest

__all__ = [
    "__version__",
    "AlignmentDocument",
    "AlignmentLink",
    "AlignmentMethod",
    "AlignmentResult",
    "ConfidenceLevel",
    "LinkShape",
    "OperationClass",
    "Segment",
    "SegmentInfo",
    "Side",
    "SegmentLedger",
    "confidence_color",
    "AlignmentError",
    "BackendError",
    "BackendUnavailable",
    "BackendUnconfigured",
    "Busy",
    "ConverterFailure",
    "HttpError",
    "IndexOutOfRange",
    "InvalidPattern",
    "IoError",
    "MalformedSegmentTree",
    "NoDocument",
    "ResponseParseError",
    "AlignmentEngine",
    "GaleChurchAligner",
    "HunalignBackend",
    "HybridArbitrator",
    "AlignmentEditor",
    "ClaudeProvider",
    "OpenAIProvider",
    "RefinementGateway",
    "create_provider",
    "AuditLogger",
    "DatabaseManager",
    "Configuration",
    "ConfigurationError",
    "ValidationResult",
    "AlignmentService",
    "AlignRequest",
]
