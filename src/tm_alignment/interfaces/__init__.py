"""Abstract interfaces for the alignment system components."""

from .aligner import IExternalAlignerBackend, ISentenceAligner
from .ai_provider import CostEstimate, IAIProvider
from .audit import AuditEvent, AuditEventType, IAuditLogger
from .converter import SUCCESS, ConversionRequest, ISegmentConverter

__all__ = [
    "IExternalAlignerBackend",
    "ISentenceAligner",
    "CostEstimate",
    "IAIProvider",
    "AuditEvent",
    "AuditEventType",
    "IAuditLogger",
    "SUCCESS",
    "ConversionRequest",
    "ISegmentConverter",
]
