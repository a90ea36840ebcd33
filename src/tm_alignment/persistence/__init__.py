"""Alignment file persistence and converter output reading."""

from .alignment_file import build_tree, read_alignment, write_alignment
from .xliff_reader import read_xliff_segments

__all__ = [
    "build_tree",
    "read_alignment",
    "write_alignment",
    "read_xliff_segments",
]
