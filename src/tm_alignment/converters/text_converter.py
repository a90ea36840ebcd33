"""Built-in converter for plain-text and Word documents.

Writes an XLIFF 1.2 file with one ``trans-unit`` per segment and a skeleton
file holding the document with each segment replaced by a ``%%%n%%%``
marker.
"""

import logging
import os
from typing import List, Optional
from zipfile import BadZipFile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from lxml import etree

from ..exceptions import ConverterFailure
from ..interfaces.converter import SUCCESS, ConversionRequest, ISegmentConverter
from .segmentation import Segmenter, load_srx


logger = logging.getLogger(__name__)

XLIFF_NS = "urn:oasis:names:tc:xliff:document:1.2"
XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"
SUPPORTED_FORMATS = {
    "txt": "plaintext",
    "text": "plaintext",
    "plaintext": "plaintext",
    "docx": "x-office",
    "word": "x-office",
}


def marker(unit_id: int) -> str:
    return f"%%%{unit_id}%%%"


def detect_format(path: str) -> str:
    """Format tag from a file extension."""
    extension = os.path.splitext(path)[1].lower().lstrip(".")
    return "docx" if extension == "docx" else "txt"


class TextConverter(ISegmentConverter):
    """
    Converts ``.txt`` and ``.docx`` documents into segments.

    Paragraphs are separated by line breaks (plain text) or are the Word
    paragraphs. In paragraph mode every non-empty paragraph is a segment;
    otherwise paragraphs are split into sentences by the SRX rules of the
    request, or by the built-in rules when no rules file is given.
    """

    def convert(self, request: ConversionRequest) -> str:
        try:
            self._convert(request)
        except ConverterFailure as e:
            logger.warning(f"Conversion of {request.source_path} failed: {e.message}")
            return e.message
        return SUCCESS

    def _convert(self, request: ConversionRequest) -> None:
        format_tag = (request.format_tag or detect_format(request.source_path)).lower()
        if format_tag not in SUPPORTED_FORMATS:
            raise ConverterFailure(
                message=f"Unsupported format '{request.format_tag}'",
                file_path=request.source_path,
            )

        paragraphs = self._read_paragraphs(request, format_tag)
        segmenter = self._segmenter(request)

        units: List[str] = []
        skeleton: List[str] = []
        for paragraph in paragraphs:
            pieces = [paragraph] if request.paragraph_mode else segmenter.split(paragraph)
            line = []
            for piece in pieces:
                text = piece.strip()
                if not text:
                    line.append(piece)
                    continue
                units.append(text)
                leading = piece[:len(piece) - len(piece.lstrip())]
                trailing = piece[len(piece.rstrip()):]
                line.append(leading + marker(len(units)) + trailing)
            skeleton.append("".join(line))

        self._write_xliff(request, SUPPORTED_FORMATS[format_tag], units)
        self._write_skeleton(request, skeleton)
        logger.info(f"Converted {request.source_path}: {len(units)} segments")

    def _read_paragraphs(self, request: ConversionRequest, format_tag: str) -> List[str]:
        if SUPPORTED_FORMATS[format_tag] == "x-office":
            try:
                doc = Document(request.source_path)
            except (BadZipFile, PackageNotFoundError) as e:
                raise ConverterFailure(
                    message="Document is corrupted or not a valid Word file",
                    file_path=request.source_path,
                    details={"original_error": str(e)},
                ) from e
            except Exception as e:
                raise ConverterFailure(
                    message=f"Failed to open document: {e}",
                    file_path=request.source_path,
                ) from e
            return [para.text for para in doc.paragraphs]
        try:
            with open(request.source_path, "r", encoding=request.encoding or "utf-8") as f:
                text = f.read()
        except (OSError, LookupError, UnicodeDecodeError) as e:
            raise ConverterFailure(
                message=f"Cannot read text file: {e}",
                file_path=request.source_path,
            ) from e
        return text.lstrip("\ufeff").splitlines()

    def _segmenter(self, request: ConversionRequest) -> Segmenter:
        if request.srx_path:
            return load_srx(request.srx_path, request.source_lang)
        return Segmenter()

    def _write_xliff(self, request: ConversionRequest, datatype: str, units: List[str]) -> None:
        nsmap = {None: XLIFF_NS}
        root = etree.Element(f"{{{XLIFF_NS}}}xliff", nsmap=nsmap, version="1.2")
        file_element = etree.SubElement(root, f"{{{XLIFF_NS}}}file", {
            "original": request.source_path,
            "source-language": request.source_lang,
            "datatype": datatype,
        })
        header = etree.SubElement(file_element, f"{{{XLIFF_NS}}}header")
        skl = etree.SubElement(header, f"{{{XLIFF_NS}}}skl")
        etree.SubElement(skl, f"{{{XLIFF_NS}}}external-file", href=request.skeleton_path)
        body = etree.SubElement(file_element, f"{{{XLIFF_NS}}}body")
        for unit_id, text in enumerate(units, start=1):
            unit = etree.SubElement(body, f"{{{XLIFF_NS}}}trans-unit", id=str(unit_id))
            unit.set(XML_SPACE, "preserve")
            source = etree.SubElement(unit, f"{{{XLIFF_NS}}}source")
            source.text = text
        try:
            with open(request.xliff_path, "wb") as f:
                f.write(etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True))
        except OSError as e:
            raise ConverterFailure(
                message=f"Cannot write XLIFF file: {e}",
                file_path=request.xliff_path,
            ) from e

    def _write_skeleton(self, request: ConversionRequest, lines: List[str]) -> None:
        try:
            with open(request.skeleton_path, "w", encoding="utf-8") as f:
                f.write("\n".join(lines))
        except OSError as e:
            raise ConverterFailure(
                message=f"Cannot write skeleton file: {e}",
                file_path=request.skeleton_path,
            ) from e


def convert_to_segments_file(
    source_path: str,
    source_lang: str,
    xliff_path: str,
    skeleton_path: str,
    format_tag: Optional[str] = None,
    **options,
) -> str:
    """Convenience wrapper building the request for ``TextConverter``."""
    request = ConversionRequest(
        source_path=source_path,
        source_lang=source_lang,
        format_tag=format_tag or detect_format(source_path),
        xliff_path=xliff_path,
        skeleton_path=skeleton_path,
        **options,
    )
    return TextConverter().convert(request)
