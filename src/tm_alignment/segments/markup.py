"""Conversion between XML inline markup and segment content trees."""

from html import escape
from typing import Dict, List

from lxml import etree

from ..exceptions import MalformedSegmentTree
from ..models.segment import GroupNode, Node, PlaceholderNode, Segment, TextNode, normalize_nodes


# Paired inline elements whose children are translatable content.
GROUP_TAGS = frozenset({"g", "mrk", "pc"})

NBSP_ENTITY = "&nbsp;"
NBSP = "\u00a0"


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def inner_xml(element: etree._Element) -> str:
    """Serialize the content of an element without its own tags."""
    parts = [escape(element.text or "", quote=False)]
    for child in element:
        parts.append(etree.tostring(child, encoding="unicode", with_tail=True))
    return "".join(parts)


def element_to_nodes(element: etree._Element) -> List[Node]:
    """
    Convert the content of a ``source``-like element to nodes.

    Args:
        element: Element whose text and children form the content.

    Returns:
        Node list in document order.
    """
    nodes: List[Node] = []
    if element.text:
        nodes.append(TextNode(element.text))
    for child in element:
        if isinstance(child.tag, str):
            tag = _local_name(child)
            attributes: Dict[str, str] = dict(child.attrib)
            if tag in GROUP_TAGS:
                nodes.append(GroupNode(tag, attributes, element_to_nodes(child)))
            else:
                nodes.append(PlaceholderNode(tag, attributes, inner_xml(child)))
        if child.tail:
            nodes.append(TextNode(child.tail))
    return normalize_nodes(nodes)


def _append_text(element: etree._Element, text: str) -> None:
    if len(element):
        last = element[-1]
        last.tail = (last.tail or "") + text
    else:
        element.text = (element.text or "") + text


def _fill_placeholder(element: etree._Element, inner: str) -> None:
    if not inner:
        return
    try:
        holder = etree.fromstring(f"<ph>{inner}</ph>")
    except etree.XMLSyntaxError:
        element.text = inner
        return
    element.text = holder.text
    for child in holder:
        element.append(child)


def append_nodes(element: etree._Element, nodes: List[Node]) -> None:
    """Append a node list as the content of an lxml element."""
    for node in nodes:
        if isinstance(node, TextNode):
            _append_text(element, node.text)
        elif isinstance(node, PlaceholderNode):
            child = etree.SubElement(element, node.tag, node.attributes)
            _fill_placeholder(child, node.inner)
        else:
            child = etree.SubElement(element, node.tag, node.attributes)
            append_nodes(child, node.children)


def segment_to_element(segment: Segment, tag: str = "source") -> etree._Element:
    """Build an lxml element holding a segment's content."""
    element = etree.Element(tag)
    append_nodes(element, segment.content)
    return element


def to_markup(segment: Segment) -> str:
    """Serialize a segment's content as inline XML markup."""
    return inner_xml(segment_to_element(segment))


def parse_markup(markup: str) -> Segment:
    """
    Parse inline markup into a segment.

    Markup without any element is taken as literal text. Otherwise it is
    wrapped in a ``source`` element and parsed as XML; ``&nbsp;`` is
    accepted as a non-breaking space.

    Args:
        markup: Inline markup as edited by the user.

    Returns:
        New segment with the parsed content.

    Raises:
        MalformedSegmentTree: If the markup is not well-formed.
    """
    if "<" not in markup:
        return Segment.from_text(markup.replace(NBSP_ENTITY, NBSP))
    wrapped = "<source>" + markup.replace(NBSP_ENTITY, NBSP) + "</source>"
    try:
        element = etree.fromstring(wrapped)
    except etree.XMLSyntaxError as e:
        raise MalformedSegmentTree(
            message=f"Segment markup is not well-formed: {e}",
            details={"markup": markup},
        ) from e
    return Segment(content=element_to_nodes(element))
