"""HTML rendering of alignment rows for review."""

import os
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from lxml import etree

from ..models.document import AlignmentDocument
from ..models.quality import SegmentInfo
from ..models.segment import GroupNode, Node, PlaceholderNode, Segment, TextNode
from ..quality.colors import confidence_color


RTL_LANGUAGES = frozenset({"ar", "arc", "ckb", "dv", "fa", "he", "iw", "ps", "sd", "ug", "ur", "yi"})
LOW_THRESHOLD = 0.50
MEDIUM_THRESHOLD = 0.75


def is_bidi(language: str) -> bool:
    """True for right-to-left languages."""
    return language.split("-")[0].lower() in RTL_LANGUAGES


def indicator(info: SegmentInfo) -> str:
    """One-character badge text for a row."""
    if info.manually_marked:
        return "!"
    if info.ai_reviewed:
        return "✓"
    if info.confidence < LOW_THRESHOLD:
        return "?"
    if info.confidence < MEDIUM_THRESHOLD:
        return "~"
    return "✓"


def badge_title(info: SegmentInfo) -> str:
    lines = ["Confidence: %.1f%%" % (info.confidence * 100)]
    if info.method:
        lines.append(f"Method: {info.method}")
    if info.manually_marked:
        lines.append("(Manually marked for review)")
    if info.ai_reviewed:
        lines.append("(AI reviewed)")
    return "\n".join(lines)


def _start_tag(node: GroupNode) -> str:
    attributes = "".join(f' {key}="{value}"' for key, value in node.attributes.items())
    return f"<{node.tag}{attributes}>"


def _placeholder_markup(node: PlaceholderNode) -> str:
    element = etree.Element(node.tag, node.attributes)
    markup = etree.tostring(element, encoding="unicode")
    if not node.inner:
        return markup
    return markup[:-2] + ">" + node.inner + f"</{node.tag}>"


class ViewRenderer:
    """
    Renders alignment rows as HTML table rows.

    Each row shows its number, a confidence badge coloured on the
    red-yellow-green gradient and the two segments with inline codes
    replaced by numbered tag markers.
    """

    def __init__(self, template_dir: Optional[str] = None):
        """
        Initialize the view renderer.

        Args:
            template_dir: Directory containing Jinja2 templates.
                         If not provided, uses the package templates.
        """
        if template_dir is None:
            template_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")

        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(['html', 'xml'])
        )

    def render_rows(self, document: AlignmentDocument, start: int = 0, count: int = 100) -> Dict[str, Any]:
        """
        Render a page of rows.

        Args:
            document: Alignment to render.
            start: First row id.
            count: Maximum number of rows.

        Returns:
            Dictionary with ``rows`` (HTML strings), ``srcRows`` and ``tgtRows``.
        """
        template = self.env.get_template('row.html')
        rows = []
        for row in self.row_data(document, start, count):
            rows.append(template.render(
                row=row,
                src_lang=document.src_lang,
                tgt_lang=document.tgt_lang,
                src_dir="rtl" if is_bidi(document.src_lang) else "",
                tgt_dir="rtl" if is_bidi(document.tgt_lang) else "",
            ))
        return {
            "rows": rows,
            "srcRows": len(document.sources),
            "tgtRows": len(document.targets),
        }

    def row_data(self, document: AlignmentDocument, start: int = 0, count: int = 100) -> List[Dict[str, Any]]:
        """Template-friendly description of a page of rows."""
        result = []
        end = min(start + max(count, 0), document.row_count())
        for segment_id in range(max(start, 0), end):
            info = document.ledger.peek(segment_id)
            result.append({
                'id': segment_id,
                'number': segment_id + 1,
                'level': info.level.value,
                'confidence': "%.2f" % info.confidence,
                'manually_marked': info.manually_marked,
                'ai_reviewed': info.ai_reviewed,
                'color': confidence_color(info.confidence),
                'indicator': indicator(info),
                'title': badge_title(info),
                'source': self._cell_parts(document.sources, segment_id),
                'target': self._cell_parts(document.targets, segment_id),
            })
        return result

    def _cell_parts(self, segments: List[Segment], segment_id: int) -> List[Dict[str, Any]]:
        if segment_id >= len(segments):
            return []
        parts: List[Dict[str, Any]] = []
        self._collect_parts(segments[segment_id].content, parts, [1])
        return parts

    def _collect_parts(self, nodes: List[Node], parts: List[Dict[str, Any]], counter: List[int]) -> None:
        for node in nodes:
            if isinstance(node, TextNode):
                parts.append({'kind': 'text', 'text': node.text})
            elif isinstance(node, PlaceholderNode):
                parts.append(self._tag(counter, _placeholder_markup(node)))
            else:
                parts.append(self._tag(counter, _start_tag(node)))
                self._collect_parts(node.children, parts, counter)
                parts.append(self._tag(counter, f"</{node.tag}>"))

    @staticmethod
    def _tag(counter: List[int], title: str) -> Dict[str, Any]:
        number = counter[0]
        counter[0] += 1
        return {'kind': 'tag', 'number': number, 'title': title}
