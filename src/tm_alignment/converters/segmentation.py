"""Rule-based sentence segmentation.

Rules follow the SRX model: each rule has a ``before`` and an ``after``
pattern and says whether the position between them is a break. Rules are
tried in order and the first one that matches a position decides.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from lxml import etree

from ..exceptions import ConverterFailure


logger = logging.getLogger(__name__)

ABBREVIATIONS = (
    "Mr", "Mrs", "Ms", "Dr", "Prof", "Sr", "Jr", "St", "vs", "etc", "e\\.g", "i\\.e",
    "No", "Nr", "Fig", "Vol", "pp", "cf", "approx", "Inc", "Ltd", "Co",
)


@dataclass
class SegmentationRule:
    """One break or exception rule."""
    is_break: bool
    before: str
    after: str

    def __post_init__(self):
        try:
            self._pattern = re.compile(f"(?:{self.before})(?=(?:{self.after}))")
        except re.error as e:
            raise ConverterFailure(
                message=f"Invalid segmentation rule: {e}",
                details={"before": self.before, "after": self.after},
            ) from e

    def positions(self, text: str) -> List[int]:
        return [m.end() for m in self._pattern.finditer(text)]


DEFAULT_RULES = [
    SegmentationRule(False, r"\b(?:" + "|".join(ABBREVIATIONS) + r")\.", r"\s"),
    SegmentationRule(False, r"\b[A-Z]\.", r"\s"),
    SegmentationRule(True, r"[.!?…]+[\"'”’)\]]*", r"\s+\S"),
    SegmentationRule(True, r"[。！？；]+[」』”’）]*", r"."),
]


def _strip_whitespace_prefix(text: str, position: int) -> int:
    while position < len(text) and text[position].isspace():
        position += 1
    return position


class Segmenter:
    """Splits paragraphs into sentences with an ordered rule list."""

    def __init__(self, rules: Optional[List[SegmentationRule]] = None):
        self.rules = rules if rules is not None else DEFAULT_RULES

    def breaks(self, text: str) -> List[int]:
        """Break offsets inside ``text``, ascending."""
        decisions: Dict[int, bool] = {}
        for rule in self.rules:
            for position in rule.positions(text):
                if 0 < position < len(text) and position not in decisions:
                    decisions[position] = rule.is_break
        return sorted(p for p, is_break in decisions.items() if is_break)

    def split(self, text: str) -> List[str]:
        """
        Split a paragraph.

        Whitespace after a break is left with the preceding sentence, so
        joining the pieces gives back the paragraph.
        """
        pieces = []
        start = 0
        for position in self.breaks(text):
            end = _strip_whitespace_prefix(text, position)
            if end > start:
                pieces.append(text[start:end])
                start = end
        if start < len(text):
            pieces.append(text[start:])
        return pieces


def load_srx(path: str, language: str) -> Segmenter:
    """
    Build a segmenter from an SRX 2.0 rules file.

    Every ``languagemap`` whose pattern matches ``language`` contributes its
    rules, in map order.

    Args:
        path: SRX file.
        language: BCP-47 code of the text to segment.

    Returns:
        Segmenter using the selected rules.

    Raises:
        ConverterFailure: If the file cannot be read or a pattern is invalid.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.parse(path, parser).getroot()
    except (OSError, etree.XMLSyntaxError) as e:
        raise ConverterFailure(message=f"Cannot read SRX file: {e}", file_path=path) from e

    named: Dict[str, List[SegmentationRule]] = {}
    for language_rule in root.iter("{*}languagerule"):
        rules = []
        for rule in language_rule.iter("{*}rule"):
            before = rule.find("{*}beforebreak")
            after = rule.find("{*}afterbreak")
            rules.append(SegmentationRule(
                is_break=rule.get("break", "yes") != "no",
                before=(before.text or "") if before is not None else "",
                after=(after.text or "") if after is not None else "",
            ))
        named[language_rule.get("languagerulename", "")] = rules

    selected: List[SegmentationRule] = []
    for language_map in root.iter("{*}languagemap"):
        pattern = language_map.get("languagepattern", "")
        try:
            matches = re.match(f"(?:{pattern})$", language) is not None
        except re.error as e:
            raise ConverterFailure(
                message=f"Invalid language pattern '{pattern}': {e}",
                file_path=path,
            ) from e
        if matches:
            selected.extend(named.get(language_map.get("languagerulename", ""), []))
    logger.debug(f"Loaded {len(selected)} segmentation rules for {language} from {path}")
    return Segmenter(selected)
