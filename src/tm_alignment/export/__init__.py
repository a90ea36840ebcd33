"""Exports of an alignment to TMX, tab-separated text and Word."""

from .csv_export import export_csv
from .docx_export import DocxExporter
from .tmx import build_tmx, export_tmx, tmx_content

__all__ = [
    "export_csv",
    "DocxExporter",
    "build_tmx",
    "export_tmx",
    "tmx_content",
]
