"""Structural editing of alignment documents."""

from .editor import AlignmentEditor, to_python_replacement

__all__ = [
    "AlignmentEditor",
    "to_python_replacement",
]
