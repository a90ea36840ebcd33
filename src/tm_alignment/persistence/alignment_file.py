"""Read and write alignment project files.

An alignment file is an ``algnproject`` document::

    <algnproject version="..." build="..." xml:space="preserve">
      <sources xml:lang="en"><source>...</source>...</sources>
      <targets xml:lang="fr"><source>...</source>...</targets>
    </algnproject>

Both lists use ``source`` elements; whitespace inside them is preserved.
"""

import logging
import os
from pathlib import Path
from typing import List, Union

from lxml import etree

from ..exceptions import IoError
from ..models.document import AlignmentDocument
from ..models.segment import Segment
from ..segments.markup import element_to_nodes, segment_to_element
from ..version import BUILD, VERSION


logger = logging.getLogger(__name__)

ROOT_TAG = "algnproject"
SEGMENT_TAG = "source"
XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"
XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"
INDENT = "  "


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=False)


def _read_list(root: etree._Element, tag: str, file_path: str):
    container = root.find(tag)
    if container is None:
        raise IoError(
            message=f"Alignment file has no <{tag}> element",
            file_path=file_path,
        )
    segments: List[Segment] = [
        Segment(content=element_to_nodes(child))
        for child in container
        if isinstance(child.tag, str)
    ]
    return container.get(XML_LANG, ""), segments


def read_alignment(path: Union[str, Path]) -> AlignmentDocument:
    """
    Load an alignment file.

    The ledger of the returned document is empty; every row starts with
    the default confidence.

    Args:
        path: Location of the ``algnproject`` file.

    Returns:
        The loaded document, remembering ``path`` as its file.

    Raises:
        IoError: If the file cannot be read or is not an alignment file.
    """
    file_path = str(path)
    try:
        tree = etree.parse(file_path, _parser())
    except OSError as e:
        raise IoError(message=f"Cannot read alignment file: {e}", file_path=file_path) from e
    except etree.XMLSyntaxError as e:
        raise IoError(
            message=f"Alignment file is not well-formed: {e}",
            file_path=file_path,
        ) from e

    root = tree.getroot()
    if etree.QName(root).localname != ROOT_TAG:
        raise IoError(
            message=f"Unexpected root element <{etree.QName(root).localname}>",
            file_path=file_path,
        )
    src_lang, sources = _read_list(root, "sources", file_path)
    tgt_lang, targets = _read_list(root, "targets", file_path)
    logger.info(f"Loaded {file_path}: {len(sources)} sources, {len(targets)} targets")
    return AlignmentDocument(
        src_lang=src_lang,
        tgt_lang=tgt_lang,
        sources=sources,
        targets=targets,
        file_path=file_path,
    )


def _build_list(tag: str, lang: str, segments: List[Segment]) -> etree._Element:
    container = etree.Element(tag)
    container.set(XML_LANG, lang)
    for segment in segments:
        container.append(segment_to_element(segment, SEGMENT_TAG))
    # indent only between elements; segment content stays untouched
    if len(container):
        container.text = "\n" + INDENT * 2
        for child in container[:-1]:
            child.tail = "\n" + INDENT * 2
        container[-1].tail = "\n" + INDENT
    return container


def build_tree(document: AlignmentDocument) -> etree._Element:
    """Build the ``algnproject`` element of a document."""
    root = etree.Element(ROOT_TAG)
    root.set("version", VERSION)
    root.set("build", BUILD)
    root.set(XML_SPACE, "preserve")
    sources = _build_list("sources", document.src_lang, document.sources)
    targets = _build_list("targets", document.tgt_lang, document.targets)
    root.text = "\n" + INDENT
    sources.tail = "\n" + INDENT
    targets.tail = "\n"
    root.append(sources)
    root.append(targets)
    return root


def write_alignment(document: AlignmentDocument, path: Union[str, Path, None] = None) -> str:
    """
    Save a document as an alignment file.

    The file is written to a temporary sibling first and then moved into
    place.

    Args:
        document: Document to save.
        path: Destination; defaults to ``document.file_path``.

    Returns:
        The path written.

    Raises:
        IoError: If no path is known or the file cannot be written.
    """
    target = str(path) if path is not None else document.file_path
    if not target:
        raise IoError(message="No file name set for the alignment")

    data = etree.tostring(
        build_tree(document),
        xml_declaration=True,
        encoding="UTF-8",
    )
    temp_path = target + ".tmp"
    try:
        with open(temp_path, "wb") as f:
            f.write(data)
        os.replace(temp_path, target)
    except OSError as e:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise IoError(message=f"Cannot write alignment file: {e}", file_path=target) from e

    document.file_path = target
    logger.info(f"Saved {target}: {len(document.sources)} sources, {len(document.targets)} targets")
    return target
