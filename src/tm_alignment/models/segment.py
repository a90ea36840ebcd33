"""Inline-markup content tree of a translatable segment.

A segment's content is an ordered list of nodes:

- ``TextNode``: translatable text.
- ``PlaceholderNode``: an atomic inline code (``ph`` and its XLIFF cousins);
  its inner content is opaque and carries no translatable characters.
- ``GroupNode``: a paired inline element (``g``) wrapping more nodes.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Union


@dataclass
class TextNode:
    """Run of plain text."""
    text: str


@dataclass
class PlaceholderNode:
    """
    Atomic inline placeholder.

    Attributes:
        tag: Element name (usually "ph").
        attributes: Element attributes in document order.
        inner: Serialized inner content, kept verbatim.
    """
    tag: str = "ph"
    attributes: Dict[str, str] = field(default_factory=dict)
    inner: str = ""

    def __post_init__(self):
        if self.attributes is None:
            self.attributes = {}


@dataclass
class GroupNode:
    """Inline group element containing further nodes."""
    tag: str = "g"
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)

    def __post_init__(self):
        if self.attributes is None:
            self.attributes = {}
        if self.children is None:
            self.children = []


Node = Union[TextNode, PlaceholderNode, GroupNode]


@dataclass
class Segment:
    """A translatable unit: the content of one ``source`` element."""
    content: List[Node] = field(default_factory=list)

    def __post_init__(self):
        if self.content is None:
            self.content = []

    @classmethod
    def from_text(cls, text: str) -> "Segment":
        """Build a segment holding a single text node."""
        return cls(content=[TextNode(text)] if text else [])

    def copy(self) -> "Segment":
        """Deep copy of the content tree."""
        return Segment(content=[_copy_node(node) for node in self.content])

    def has_markup(self) -> bool:
        """True when the segment contains any inline element."""
        return any(not isinstance(node, TextNode) for node in self.content)


def _copy_node(node: Node) -> Node:
    if isinstance(node, TextNode):
        return TextNode(node.text)
    if isinstance(node, PlaceholderNode):
        return PlaceholderNode(node.tag, dict(node.attributes), node.inner)
    return GroupNode(node.tag, dict(node.attributes), [_copy_node(c) for c in node.children])


def normalize_nodes(nodes: List[Node]) -> List[Node]:
    """Merge adjacent text nodes and drop empty ones, recursing into groups."""
    result: List[Node] = []
    for node in nodes:
        if isinstance(node, GroupNode):
            node = GroupNode(node.tag, node.attributes, normalize_nodes(node.children))
        if isinstance(node, TextNode):
            if not node.text:
                continue
            if result and isinstance(result[-1], TextNode):
                result[-1] = TextNode(result[-1].text + node.text)
                continue
        result.append(node)
    return result


def count_elements(nodes: List[Node]) -> int:
    """Number of inline elements (placeholders and groups) in a node list."""
    total = 0
    for node in nodes:
        if isinstance(node, PlaceholderNode):
            total += 1
        elif isinstance(node, GroupNode):
            total += 1 + count_elements(node.children)
    return total
