"""Build the alignment-review prompt sent to language models."""

import os
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..models.alignment import AlignmentLink


DEFAULT_TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")
PROMPT_TEMPLATE = "alignment_prompt.txt"


def escape_text(text: Optional[str]) -> str:
    """Escape a segment for a single prompt line."""
    if text is None:
        return ""
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", " ")
        .replace("\r", "")
    )


def format_indices(indices: List[int]) -> str:
    if not indices:
        return "[]"
    if len(indices) == 1:
        return str(indices[0])
    return "[" + ", ".join(str(i) for i in indices) + "]"


class PromptBuilder:
    """
    Renders the review prompt from a jinja2 template.

    The prompt lists every source and target segment with its index, the
    uncertain links with their confidence and reason, and asks for a JSON
    reply inside a fenced ``json`` block.
    """

    def __init__(
        self,
        template_dir: Optional[str] = None,
        source_language: str = "source language",
        target_language: str = "target language",
    ):
        self.template_dir = template_dir or DEFAULT_TEMPLATE_DIR
        self.source_language = source_language
        self.target_language = target_language
        self.env = Environment(
            loader=FileSystemLoader(self.template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def build(
        self,
        sources: List[str],
        targets: List[str],
        uncertain: List[AlignmentLink],
    ) -> str:
        """
        Render the prompt.

        Args:
            sources: Full list of source texts.
            targets: Full list of target texts.
            uncertain: Links to review.

        Returns:
            Prompt text.
        """
        template = self.env.get_template(PROMPT_TEMPLATE)
        return template.render(
            source_language=self.source_language,
            target_language=self.target_language,
            sources=[escape_text(text) for text in sources],
            targets=[escape_text(text) for text in targets],
            pairs=[self._prepare_pair(link) for link in uncertain],
            last_target=max(len(targets) - 1, 0),
        )

    def _prepare_pair(self, link: AlignmentLink) -> Dict[str, str]:
        return {
            "source": format_indices(link.src_indices),
            "target": format_indices(link.tgt_indices),
            "confidence": "%.2f" % link.confidence,
            "note": link.note,
        }
