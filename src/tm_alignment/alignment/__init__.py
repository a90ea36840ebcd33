"""Sentence alignment: baseline, external adapter, arbitration and engine."""

from .alignment_engine import AlignmentEngine
from .arbitrator import HybridArbitrator
from .external_aligner import HunalignBackend, parse_output
from .gale_church import GaleChurchAligner

__all__ = [
    "AlignmentEngine",
    "GaleChurchAligner",
    "HunalignBackend",
    "HybridArbitrator",
    "parse_output",
]
