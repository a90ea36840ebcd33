"""Tab-separated export in UTF-16LE with a byte-order mark."""

import logging
from pathlib import Path
from typing import Union

from ..exceptions import IoError
from ..models.document import AlignmentDocument
from ..models.segment import Segment
from ..segments.extractor import pure_text


logger = logging.getLogger(__name__)

BOM = "\ufeff"


def _cell(segment: Segment) -> str:
    return pure_text(segment.content).replace("\t", " ").replace("\n", " ").strip()


def export_csv(document: AlignmentDocument, path: Union[str, Path]) -> int:
    """
    Write the aligned rows as tab-separated text.

    The first line holds the two language codes; each following line one
    row of pure text over the shorter list.

    Args:
        document: Alignment to export.
        path: Output file.

    Returns:
        Number of data rows written.

    Raises:
        IoError: If the file cannot be written.
    """
    rows = min(len(document.sources), len(document.targets))
    try:
        with open(path, "w", encoding="utf-16-le", newline="") as f:
            f.write(BOM)
            f.write(f"{document.src_lang}\t{document.tgt_lang}\n")
            for i in range(rows):
                f.write(f"{_cell(document.sources[i])}\t{_cell(document.targets[i])}\n")
    except OSError as e:
        raise IoError(message=f"Cannot write CSV file: {e}", file_path=str(path)) from e
    logger.info(f"Exported {rows} rows to {path}")
    return rows
