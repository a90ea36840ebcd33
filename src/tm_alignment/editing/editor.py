"""Structural editing of an alignment document.

Every operation validates its preconditions before touching the document,
so a rejected call leaves both segment lists and the ledger untouched.

Ledger policy: entries are keyed by row and renumbered eagerly. Removing a
segment (``remove``, ``merge_next``, ``remove_duplicates``) drops the entry of
the removed row and shifts later entries down by one; inserting a segment
(``split``) shifts entries at and after the new row up by one, leaving the
new row with a default entry. Swaps (``segment_up``/``segment_down``) and
content edits keep entries in place: a row's entry describes the row, not
the segment that happens to sit in it.
"""

import logging
import re
from typing import List, Optional, Pattern

from ..exceptions import IndexOutOfRange, InvalidPattern
from ..models.document import AlignmentDocument
from ..models.enums import Side
from ..models.segment import GroupNode, Node, Segment, TextNode, normalize_nodes
from ..segments.extractor import pure_text
from ..segments.markup import parse_markup


logger = logging.getLogger(__name__)

# "$1" / "${name}" style group references, as sent by the editing UI, plus
# the "\$" and "\\" escapes that keep a dollar or backslash literal.
_REPLACEMENT_TOKEN = re.compile(r"\\[\\$]|\$(?:(\d+)|\{(\w+)\})")


def _translate_token(match) -> str:
    token = match.group(0)
    if token == "\\$":
        return "$"
    if token == "\\\\":
        return token
    return "\\g<" + (match.group(1) or match.group(2)) + ">"


def to_python_replacement(replacement: str) -> str:
    """Translate ``$n``/``${name}`` references to ``\\g<n>``/``\\g<name>``."""
    return _REPLACEMENT_TOKEN.sub(_translate_token, replacement)


class AlignmentEditor:
    """
    Editor for the segment lists of one alignment document.

    The compiled replace-text pattern is cached per editor and recompiled
    whenever the pattern text changes.
    """

    def __init__(self, document: AlignmentDocument):
        self.document = document
        self._pattern: Optional[Pattern] = None
        self._pattern_text: Optional[str] = None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _list(self, side: Side) -> List[Segment]:
        return self.document.segments(side)

    def _check_index(self, side: Side, index: int, upper: Optional[int] = None, lower: int = 0) -> None:
        size = len(self._list(side))
        limit = size if upper is None else upper
        if not lower <= index < limit:
            raise IndexOutOfRange(
                message=f"Row {index} is out of range for {side.value} list of {size} segments",
                location=f"{side.value}[{index}]",
                side=side.value,
                index=index,
                size=size,
            )

    # =========================================================================
    # Structural operations
    # =========================================================================

    def remove(self, side: Side, index: int) -> None:
        """
        Delete the segment at ``index``.

        Raises:
            IndexOutOfRange: If ``index`` is not a valid position.
        """
        self._check_index(side, index)
        del self._list(side)[index]
        self.document.ledger.remove_row(index)

    def segment_up(self, side: Side, index: int) -> None:
        """Swap the segment at ``index`` with its predecessor."""
        self._check_index(side, index, lower=1)
        segments = self._list(side)
        segments[index - 1], segments[index] = segments[index], segments[index - 1]

    def segment_down(self, side: Side, index: int) -> None:
        """Swap the segment at ``index`` with its successor."""
        segments = self._list(side)
        self._check_index(side, index, upper=len(segments) - 1)
        segments[index], segments[index + 1] = segments[index + 1], segments[index]

    def merge_next(self, side: Side, index: int) -> None:
        """
        Append the content of the next segment to ``index`` and drop the next one.

        Raises:
            IndexOutOfRange: If ``index`` is the last position or invalid.
        """
        segments = self._list(side)
        self._check_index(side, index, upper=len(segments) - 1)
        merged = segments[index].content + segments[index + 1].content
        segments[index] = Segment(content=normalize_nodes(merged))
        del segments[index + 1]
        self.document.ledger.remove_row(index + 1)

    def split(self, side: Side, index: int, prefix: str, suffix: str) -> None:
        """
        Replace a segment with two segments parsed from markup.

        Args:
            side: List to edit.
            index: Segment to split.
            prefix: Markup of the first part, kept at ``index``.
            suffix: Markup of the second part, inserted at ``index + 1``.

        Raises:
            IndexOutOfRange: If ``index`` is not a valid position.
            MalformedSegmentTree: If either part is not well-formed.
        """
        self._check_index(side, index)
        first = parse_markup(prefix)
        second = parse_markup(suffix)
        segments = self._list(side)
        segments[index] = first
        segments.insert(index + 1, second)
        self.document.ledger.insert_row(index + 1)

    def save_edit(self, side: Side, index: int, markup: str) -> None:
        """
        Replace a segment's content with edited markup.

        Raises:
            IndexOutOfRange: If ``index`` is not a valid position.
            MalformedSegmentTree: If the markup is not well-formed.
        """
        self._check_index(side, index)
        self._list(side)[index] = parse_markup(markup)

    # =========================================================================
    # Bulk operations
    # =========================================================================

    def replace_text(self, side: Side, search: str, replacement: str, regex: bool = False) -> int:
        """
        Replace text in every segment of one side.

        Replacement happens inside text nodes only, including text nested
        in groups; inline elements and their attributes are never altered
        and matches never span an element boundary. In regex mode the
        replacement may use ``\\1``/``\\g<name>`` or ``$1``/``${name}``.

        Args:
            side: List to edit.
            search: Literal text or regular expression.
            replacement: Replacement text.
            regex: Treat ``search`` as a regular expression.

        Returns:
            Number of segments whose content changed.

        Raises:
            InvalidPattern: If ``search`` is not a valid regular expression
                or ``replacement`` is not a valid template for it.
        """
        if not search:
            return 0
        if regex:
            pattern = self._compile(search)
            python_replacement = to_python_replacement(replacement)

            def substitute(text: str) -> str:
                return pattern.sub(python_replacement, text)
        else:
            def substitute(text: str) -> str:
                return text.replace(search, replacement)

        segments = self._list(side)
        try:
            replaced = [self._replace_in_nodes(segment.content, substitute) for segment in segments]
        except re.error as e:
            raise InvalidPattern(
                message=f"Invalid replacement: {e}",
                details={"pattern": search, "replacement": replacement},
            ) from e

        changed = 0
        for index, content in enumerate(replaced):
            if content != segments[index].content:
                segments[index] = Segment(content=content)
                changed += 1
        logger.info(f"Replaced text in {changed} {side.value} segments")
        return changed

    def _compile(self, search: str) -> Pattern:
        if self._pattern is None or search != self._pattern_text:
            try:
                self._pattern = re.compile(search)
            except re.error as e:
                raise InvalidPattern(message=f"Invalid pattern: {e}", details={"pattern": search}) from e
            self._pattern_text = search
        return self._pattern

    def _replace_in_nodes(self, nodes: List[Node], substitute) -> List[Node]:
        result: List[Node] = []
        for node in nodes:
            if isinstance(node, TextNode):
                result.append(TextNode(substitute(node.text)))
            elif isinstance(node, GroupNode):
                result.append(GroupNode(
                    node.tag,
                    dict(node.attributes),
                    self._replace_in_nodes(node.children, substitute),
                ))
            else:
                result.append(node)
        return result

    def remove_duplicates(self) -> int:
        """
        Delete repeated rows.

        For every pair of rows ``i < j`` with identical source and target
        content, row ``j`` is removed from both lists.

        Returns:
            Number of rows removed.
        """
        sources = self.document.sources
        targets = self.document.targets
        removed = 0
        i = 0
        while i < len(sources) - 1:
            j = i + 1
            while j < len(sources):
                if j < len(targets) and i < len(targets) and sources[i] == sources[j] and targets[i] == targets[j]:
                    del sources[j]
                    del targets[j]
                    self.document.ledger.remove_row(j)
                    removed += 1
                else:
                    j += 1
            i += 1
        logger.info(f"Removed {removed} duplicate rows")
        return removed

    def remove_tags(self, side: Optional[Side] = None) -> int:
        """
        Flatten segments to pure text, dropping all inline elements.

        Args:
            side: List to flatten; both lists when None.

        Returns:
            Number of segments that carried markup.
        """
        sides = [side] if side is not None else [Side.SOURCE, Side.TARGET]
        flattened = 0
        for current in sides:
            segments = self._list(current)
            for index, segment in enumerate(segments):
                if segment.has_markup():
                    segments[index] = Segment.from_text(pure_text(segment.content))
                    flattened += 1
        return flattened

    def set_languages(self, src_lang: str, tgt_lang: str) -> None:
        """Change the language tags of both sides."""
        self.document.src_lang = src_lang
        self.document.tgt_lang = tgt_lang
