"""Segment converter interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


SUCCESS = "Success"


@dataclass
class ConversionRequest:
    """
    Parameters of one document conversion.

    Attributes:
        source_path: Document to convert.
        source_lang: BCP-47 language of the document.
        format_tag: Format identifier (e.g. "txt", "docx").
        xliff_path: Destination of the intermediate bilingual file.
        skeleton_path: Destination of the skeleton file.
        encoding: Character encoding of plain-text input.
        paragraph_mode: Keep paragraphs whole instead of splitting sentences.
        srx_path: Segmentation rules file.
        catalog_path: XML catalog used by format filters.
        filter_config_path: Format-filter configuration.
    """
    source_path: str
    source_lang: str
    format_tag: str
    xliff_path: str
    skeleton_path: str
    encoding: str = "utf-8"
    paragraph_mode: bool = False
    srx_path: Optional[str] = None
    catalog_path: Optional[str] = None
    filter_config_path: Optional[str] = None


class ISegmentConverter(ABC):
    """
    Abstract interface for document-to-segments converters.

    A converter writes an intermediate XLIFF file whose ``trans-unit``
    ``source`` children are the document's segments.
    """

    @abstractmethod
    def convert(self, request: ConversionRequest) -> str:
        """
        Convert a document.

        Args:
            request: Conversion parameters.

        Returns:
            ``"Success"`` or an error message.
        """
        pass
