"""Segment text extraction and inline markup handling."""

from .extractor import extract, extract_all, pure_text
from .markup import element_to_nodes, parse_markup, segment_to_element, to_markup

__all__ = [
    "extract",
    "extract_all",
    "pure_text",
    "element_to_nodes",
    "parse_markup",
    "segment_to_element",
    "to_markup",
]
