"""Flatten segment content trees to translatable text."""

from typing import Iterable, List

from ..models.segment import GroupNode, Node, Segment, TextNode


def _collect(nodes: Iterable[Node], parts: List[str]) -> None:
    for node in nodes:
        if isinstance(node, TextNode):
            parts.append(node.text)
        elif isinstance(node, GroupNode):
            _collect(node.children, parts)
        # placeholders carry no translatable characters


def pure_text(nodes: Iterable[Node]) -> str:
    """Concatenate the text of a node list without trimming."""
    parts: List[str] = []
    _collect(nodes, parts)
    return "".join(parts)


def extract(segment: Segment) -> str:
    """
    Flatten a segment to pure text.

    Text nodes are concatenated in document order, groups are expanded in
    place, placeholders contribute nothing, and outer whitespace is trimmed.

    Args:
        segment: Segment to flatten.

    Returns:
        The segment's translatable text.
    """
    return pure_text(segment.content).strip()


def extract_all(segments: Iterable[Segment]) -> List[str]:
    """Flatten every segment of a list."""
    return [extract(segment) for segment in segments]
