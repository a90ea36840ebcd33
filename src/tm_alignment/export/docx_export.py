"""Bilingual two-column Word table export."""

import logging
from pathlib import Path
from typing import Optional, Union

from docx import Document
from docx.shared import Pt, RGBColor

from ..exceptions import IoError
from ..models.document import AlignmentDocument
from ..quality.colors import confidence_color
from ..segments.extractor import extract


logger = logging.getLogger(__name__)


def _rgb(hex_color: str) -> RGBColor:
    return RGBColor.from_string(hex_color.lstrip("#").upper())


class DocxExporter:
    """
    Writes an alignment as a Word document holding one two-column table.

    With ``show_confidence`` each row gets a third column with the ledger
    confidence, coloured on the red-yellow-green gradient.
    """

    def __init__(self, font_size: int = 10, show_confidence: bool = False):
        self.font_size = font_size
        self.show_confidence = show_confidence

    def export(
        self,
        document: AlignmentDocument,
        path: Union[str, Path],
        title: Optional[str] = None,
    ) -> int:
        """
        Write the table.

        Args:
            document: Alignment to export.
            path: Output ``.docx`` file.
            title: Heading above the table; defaults to the language pair.

        Returns:
            Number of data rows written.

        Raises:
            IoError: If the file cannot be written.
        """
        doc = Document()
        doc.add_heading(title or f"{document.src_lang} - {document.tgt_lang}", level=1)

        rows = min(len(document.sources), len(document.targets))
        columns = 3 if self.show_confidence else 2
        table = doc.add_table(rows=1, cols=columns)
        table.style = "Table Grid"

        header = table.rows[0].cells
        header[0].text = document.src_lang
        header[1].text = document.tgt_lang
        if self.show_confidence:
            header[2].text = "Confidence"
        for cell in header:
            for run in cell.paragraphs[0].runs:
                run.bold = True

        for i in range(rows):
            cells = table.add_row().cells
            self._write_cell(cells[0], extract(document.sources[i]))
            self._write_cell(cells[1], extract(document.targets[i]))
            if self.show_confidence:
                confidence = document.ledger.peek(i).confidence
                run = self._write_cell(cells[2], "%d%%" % round(confidence * 100))
                run.font.color.rgb = _rgb(confidence_color(confidence))

        try:
            doc.save(str(path))
        except OSError as e:
            raise IoError(message=f"Cannot write Word file: {e}", file_path=str(path)) from e
        logger.info(f"Exported {rows} rows to {path}")
        return rows

    def _write_cell(self, cell, text: str):
        paragraph = cell.paragraphs[0]
        run = paragraph.add_run(text)
        run.font.size = Pt(self.font_size)
        return run
