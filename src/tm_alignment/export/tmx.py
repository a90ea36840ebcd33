"""TMX 1.4 export of an alignment."""

import logging
import time
from pathlib import Path
from typing import List, Union

from lxml import etree

from ..exceptions import IoError
from ..models.document import AlignmentDocument
from ..models.segment import GroupNode, Node, PlaceholderNode, Segment, TextNode
from ..segments.extractor import pure_text
from ..segments.markup import append_nodes
from ..version import CREATION_TOOL, VERSION


logger = logging.getLogger(__name__)

TMX_DOCTYPE = (
    '<!DOCTYPE tmx PUBLIC "-//LISA OSCAR:1998//DTD for Translation Memory eXchange//EN" '
    '"tmx14.dtd">'
)
XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"


def tmx_content(segment: Segment) -> List[Node]:
    """
    Reduce a segment to TMX ``seg`` content.

    Text is kept, ``ph`` placeholders lose their attributes, groups are
    flattened to their text and other inline codes are dropped. Leading and
    trailing whitespace of the whole segment is trimmed.
    """
    nodes: List[Node] = []
    for node in segment.content:
        if isinstance(node, TextNode):
            nodes.append(TextNode(node.text))
        elif isinstance(node, PlaceholderNode):
            if node.tag == "ph":
                nodes.append(PlaceholderNode("ph", {}, node.inner))
        elif isinstance(node, GroupNode):
            nodes.append(TextNode(pure_text(node.children)))

    if nodes and isinstance(nodes[0], TextNode):
        nodes[0] = TextNode(nodes[0].text.lstrip())
    if nodes and isinstance(nodes[-1], TextNode):
        nodes[-1] = TextNode(nodes[-1].text.rstrip())
    return [n for n in nodes if not (isinstance(n, TextNode) and not n.text)]


def _tuv(lang: str, segment: Segment) -> etree._Element:
    tuv = etree.Element("tuv")
    tuv.set(XML_LANG, lang)
    seg = etree.SubElement(tuv, "seg")
    append_nodes(seg, tmx_content(segment))
    return tuv


def build_tmx(document: AlignmentDocument) -> etree._Element:
    """Build the ``tmx`` element: one ``tu`` per row over the shorter list."""
    root = etree.Element("tmx", version="1.4")
    etree.SubElement(root, "header", {
        "creationtool": CREATION_TOOL,
        "creationtoolversion": VERSION,
        "datatype": "unknown",
        "segtype": "block",
        "adminlang": "en",
        "srclang": "*all*",
        "o-tmf": "XLIFF",
    })
    body = etree.SubElement(root, "body")

    tuid = int(time.time() * 1000)
    rows = min(len(document.sources), len(document.targets))
    for i in range(rows):
        tu = etree.SubElement(body, "tu", tuid=str(tuid))
        tuid += 1
        tu.append(_tuv(document.src_lang, document.sources[i]))
        tu.append(_tuv(document.tgt_lang, document.targets[i]))
    return root


def export_tmx(document: AlignmentDocument, path: Union[str, Path]) -> int:
    """
    Write a TMX 1.4 file.

    Args:
        document: Alignment to export.
        path: Output file.

    Returns:
        Number of translation units written.

    Raises:
        IoError: If the file cannot be written.
    """
    root = build_tmx(document)
    data = etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        doctype=TMX_DOCTYPE,
        pretty_print=True,
    )
    try:
        Path(path).write_bytes(data)
    except OSError as e:
        raise IoError(message=f"Cannot write TMX file: {e}", file_path=str(path)) from e
    count = len(root.find("body"))
    logger.info(f"Exported {count} translation units to {path}")
    return count
