"""Parse language-model replies into alignment links."""

import json
from typing import Any, List

from ..exceptions import ResponseParseError
from ..models.alignment import AlignmentLink


DEFAULT_NOTE = "AI-improved"
FENCE = "```"
JSON_FENCE = "```json"


def extract_json(text: str) -> str:
    """
    Locate the JSON payload in a model reply.

    The first ``json``-tagged fenced block wins; otherwise the substring
    from the first ``{`` to the last ``}`` is used.

    Args:
        text: Raw reply text.

    Returns:
        Candidate JSON text (the whole reply if nothing better is found).
    """
    start = text.find(JSON_FENCE)
    if start != -1:
        body_start = text.find("\n", start)
        if body_start != -1:
            end = text.find(FENCE, body_start + 1)
            if end != -1:
                return text[body_start + 1:end].strip()

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text


def _indices(value: Any, field_name: str, position: int) -> List[int]:
    if not isinstance(value, list) or not all(
        isinstance(i, int) and not isinstance(i, bool) and i >= 0 for i in value
    ):
        raise ResponseParseError(
            message=f"Field '{field_name}' must be a list of non-negative integers",
            location=f"alignments[{position}]",
        )
    return list(value)


def parse_alignments(text: str) -> List[AlignmentLink]:
    """
    Parse a reply of the form ``{"alignments": [{source, target, confidence, note}]}``.

    Args:
        text: Raw reply text from the model.

    Returns:
        Links flagged as AI-reviewed, confidences clamped to [0, 1].

    Raises:
        ResponseParseError: If the reply is not JSON matching the schema.
    """
    payload = extract_json(text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ResponseParseError(
            message=f"Model reply is not valid JSON: {e.msg}",
            location=f"line {e.lineno}, column {e.colno}",
            details={"reply": text[:500]},
        ) from e

    if not isinstance(data, dict) or not isinstance(data.get("alignments"), list):
        raise ResponseParseError(
            message="Model reply has no 'alignments' list",
            details={"reply": text[:500]},
        )

    links: List[AlignmentLink] = []
    for position, entry in enumerate(data["alignments"]):
        if not isinstance(entry, dict):
            raise ResponseParseError(
                message="Alignment entry must be an object",
                location=f"alignments[{position}]",
            )
        confidence = entry.get("confidence")
        if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
            raise ResponseParseError(
                message="Field 'confidence' must be a number",
                location=f"alignments[{position}]",
            )
        note = entry.get("note") or DEFAULT_NOTE
        links.append(AlignmentLink(
            src_indices=_indices(entry.get("source"), "source", position),
            tgt_indices=_indices(entry.get("target"), "target", position),
            confidence=max(0.0, min(1.0, float(confidence))),
            note=str(note),
            ai_reviewed=True,
        ))
    return links
