"""Document converters producing segment files."""

from .segmentation import DEFAULT_RULES, SegmentationRule, Segmenter, load_srx
from .text_converter import TextConverter, convert_to_segments_file, detect_format

__all__ = [
    "DEFAULT_RULES",
    "SegmentationRule",
    "Segmenter",
    "load_srx",
    "TextConverter",
    "convert_to_segments_file",
    "detect_format",
]
