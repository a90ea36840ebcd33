"""Unit tests for language-model refinement."""

import json
from typing import List
from unittest.mock import MagicMock, patch

import pytest
import requests

from tm_alignment.config import Configuration, ConfigurationError
from tm_alignment.exceptions import (
    BackendError,
    BackendUnconfigured,
    HttpError,
    ResponseParseError,
)
from tm_alignment.interfaces.ai_provider import CostEstimate, IAIProvider
from tm_alignment.models import AlignmentDocument, AlignmentLink, Segment
from tm_alignment.refinement import (
    ClaudeProvider,
    OpenAIProvider,
    PromptBuilder,
    RefinementGateway,
    create_provider,
    estimate_cost,
    extract_json,
    parse_alignments,
)
from tm_alignment.refinement.gateway import LOW_CONFIDENCE_NOTE, MARKED_NOTE
from tm_alignment.segments.extractor import extract, extract_all


REPLY = {
    "alignments": [
        {"source": [3], "target": [5], "confidence": 0.9, "note": "Changed from T3 to T5"},
    ]
}


def fenced(payload) -> str:
    return "Here is my analysis:\n```json\n" + json.dumps(payload) + "\n```\nDone."


def make_document(rows: int = 6) -> AlignmentDocument:
    document = AlignmentDocument(
        src_lang="en",
        tgt_lang="de",
        sources=[Segment.from_text(f"Source {i}.") for i in range(rows)],
        targets=[Segment.from_text(f"Ziel {i}.") for i in range(rows)],
    )
    for row in range(rows):
        document.ledger.set_confidence(row, 0.9)
    return document


class FakeProvider(IAIProvider):
    """Provider returning canned links and recording its calls."""

    def __init__(self, links=None, error=None, configured=True):
        self.links = links or []
        self.error = error
        self.configured = configured
        self.calls = []

    @property
    def provider_name(self) -> str:
        return "Fake"

    @property
    def model_name(self) -> str:
        return "fake-model"

    def is_configured(self) -> bool:
        return self.configured

    def analyze(self, sources, targets, uncertain):
        self.calls.append((list(sources), list(targets), list(uncertain)))
        if self.error is not None:
            raise self.error
        return self.links

    def estimate_cost(self, sources, targets, uncertain) -> CostEstimate:
        return estimate_cost(sources, targets, uncertain, 1.0, 2.0, self.provider_name, self.model_name)


def mock_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text or json.dumps(payload)
    if payload is None:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload
    return response


class TestResponseParser:
    """Tests for extracting and validating model replies."""

    def test_extract_from_json_fence(self):
        assert json.loads(extract_json(fenced(REPLY))) == REPLY

    def test_extract_from_braces(self):
        text = 'Sure! {"alignments": []} Hope that helps.'

        assert extract_json(text) == '{"alignments": []}'

    def test_parse_alignments(self):
        links = parse_alignments(fenced(REPLY))

        assert len(links) == 1
        assert links[0].src_indices == [3]
        assert links[0].tgt_indices == [5]
        assert links[0].confidence == pytest.approx(0.9)
        assert links[0].ai_reviewed

    def test_missing_note_gets_default(self):
        links = parse_alignments('{"alignments": [{"source": [0], "target": [0], "confidence": 2}]}')

        assert links[0].note == "AI-improved"
        assert links[0].confidence == 1.0

    @pytest.mark.parametrize("reply", [
        "no json here",
        '{"result": []}',
        '{"alignments": [{"source": [0], "target": [0]}]}',
        '{"alignments": [{"source": "0", "target": [0], "confidence": 0.5}]}',
        '{"alignments": [{"source": [-1], "target": [0], "confidence": 0.5}]}',
        '{"alignments": ["not an object"]}',
    ])
    def test_invalid_replies_raise(self, reply):
        with pytest.raises(ResponseParseError):
            parse_alignments(reply)


class TestPromptBuilder:
    """Tests for the rendered review prompt."""

    def test_prompt_lists_segments_and_pairs(self):
        builder = PromptBuilder(source_language="en", target_language="de")
        uncertain = [AlignmentLink([1], [1, 2], 0.42, "Low confidence")]

        prompt = builder.build(["Hello.", 'Say "hi"\nplease'], ["Hallo.", "Sag hi", "bitte"], uncertain)

        assert "S0: Hello." in prompt
        assert 'S1: Say \\"hi\\" please' in prompt
        assert "T2: bitte" in prompt
        assert "- S1 <-> T[1, 2] (Confidence: 0.42, Reason: Low confidence)" in prompt
        assert "T0 to T2" in prompt
        assert "```json" in prompt


class TestCostEstimator:
    """Tests for cost estimation."""

    def test_estimate(self):
        estimate = estimate_cost(
            ["a" * 90], ["b" * 90], [AlignmentLink([0], [0], 0.5)],
            input_price=3.0, output_price=15.0, provider="Claude", model="m",
        )

        # (1000 + 100 + 100 + 50) chars / 4
        assert estimate.input_tokens == 312
        assert estimate.output_tokens == 50
        assert estimate.estimated_cost == pytest.approx(312 * 3.0 / 1e6 + 50 * 15.0 / 1e6)
        assert estimate.uncertain_segments == 1
        assert estimate.total_segments == 1
        assert estimate.formatted_cost.startswith("$0.00")
        assert "Segments to review: 1 of 1" in estimate.breakdown


class TestHttpProviders:
    """Tests for the Claude and OpenAI providers with a mocked transport."""

    def test_unconfigured_provider_raises(self):
        provider = ClaudeProvider(api_key="")

        assert not provider.is_configured()
        with pytest.raises(BackendUnconfigured):
            provider.analyze(["a"], ["b"], [AlignmentLink([0], [0], 0.5)])

    def test_nothing_uncertain_skips_request(self):
        with patch("tm_alignment.refinement.providers.requests.post") as post:
            assert ClaudeProvider(api_key="key").analyze(["a"], ["b"], []) == []

        post.assert_not_called()

    def test_claude_request_and_reply(self):
        provider = ClaudeProvider(api_key="sk-test", timeout=12)
        reply = {"content": [{"type": "text", "text": fenced(REPLY)}]}

        with patch("tm_alignment.refinement.providers.requests.post", return_value=mock_response(payload=reply)) as post:
            links = provider.analyze(["s"] * 6, ["t"] * 6, [AlignmentLink([3], [3], 0.4)])

        assert links[0].tgt_indices == [5]
        _, kwargs = post.call_args
        assert kwargs["headers"]["x-api-key"] == "sk-test"
        assert kwargs["headers"]["anthropic-version"] == "2023-06-01"
        assert kwargs["json"]["model"] == provider.model_name
        assert kwargs["json"]["messages"][0]["role"] == "user"
        assert kwargs["timeout"] == 12

    def test_openai_request_and_reply(self):
        provider = OpenAIProvider(api_key="sk-openai")
        reply = {"choices": [{"message": {"content": fenced(REPLY)}}]}

        with patch("tm_alignment.refinement.providers.requests.post", return_value=mock_response(payload=reply)) as post:
            links = provider.analyze(["s"] * 6, ["t"] * 6, [AlignmentLink([3], [3], 0.4)])

        assert len(links) == 1
        _, kwargs = post.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer sk-openai"
        assert [m["role"] for m in kwargs["json"]["messages"]] == ["system", "user"]

    def test_non_200_raises_http_error(self):
        provider = ClaudeProvider(api_key="key")

        with patch(
            "tm_alignment.refinement.providers.requests.post",
            return_value=mock_response(status_code=429, payload={}, text="rate limited"),
        ):
            with pytest.raises(HttpError) as exc_info:
                provider.analyze(["a"], ["b"], [AlignmentLink([0], [0], 0.5)])

        assert exc_info.value.status_code == 429
        assert isinstance(exc_info.value, BackendError)

    def test_transport_error_raises_backend_error(self):
        provider = ClaudeProvider(api_key="key")

        with patch(
            "tm_alignment.refinement.providers.requests.post",
            side_effect=requests.exceptions.ConnectionError("refused"),
        ):
            with pytest.raises(BackendError):
                provider.analyze(["a"], ["b"], [AlignmentLink([0], [0], 0.5)])

    def test_unexpected_structure_raises_parse_error(self):
        provider = ClaudeProvider(api_key="key")

        with patch(
            "tm_alignment.refinement.providers.requests.post",
            return_value=mock_response(payload={"content": []}),
        ):
            with pytest.raises(ResponseParseError):
                provider.analyze(["a"], ["b"], [AlignmentLink([0], [0], 0.5)])

    def test_non_json_body_raises_parse_error(self):
        provider = OpenAIProvider(api_key="key")

        with patch(
            "tm_alignment.refinement.providers.requests.post",
            return_value=mock_response(payload=None, text="<html>"),
        ):
            with pytest.raises(ResponseParseError):
                provider.analyze(["a"], ["b"], [AlignmentLink([0], [0], 0.5)])


class TestProviderFactory:
    """Tests for create_provider."""

    def test_selects_configured_provider(self):
        config = Configuration(
            overrides={"ai.provider": "openai", "openai.apiKey": "k", "ai.timeout": "30"},
            environ={},
            config_path="missing.properties",
        )

        provider = create_provider(config)

        assert isinstance(provider, OpenAIProvider)
        assert provider.is_configured()
        assert provider.timeout == 30
        assert provider.model_name == "gpt-4-turbo-preview"

    def test_name_overrides_configuration(self):
        config = Configuration(environ={}, config_path="missing.properties")

        assert isinstance(create_provider(config, name="Claude"), ClaudeProvider)

    def test_unknown_provider(self):
        config = Configuration(overrides={"ai.provider": "gemini"}, environ={}, config_path="missing.properties")

        with pytest.raises(ConfigurationError):
            create_provider(config)


class TestRefinementGateway:
    """Tests for RefinementGateway."""

    def test_refine_swaps_targets_and_updates_ledger(self):
        """Test that a suggested target swaps rows and marks the entry reviewed."""
        document = make_document()
        document.ledger.set_confidence(3, 0.4)
        document.ledger.set_manual_mark(3, True)
        before = list(document.targets)
        provider = FakeProvider(links=parse_alignments(json.dumps(REPLY)))

        report = RefinementGateway(provider).refine(document)

        assert document.targets[3] == before[5]
        assert document.targets[5] == before[3]
        info = document.ledger.get(3)
        assert info.ai_reviewed
        assert not info.manually_marked
        assert info.confidence == pytest.approx(0.9)
        assert report.refined_count == 1
        assert report.swapped_count == 1
        assert report.remaining_uncertain == 0
        assert report.overall_confidence == pytest.approx(1.0)
        assert report.estimate is not None

    def test_candidate_links_describe_uncertain_rows(self):
        document = make_document(3)
        document.ledger.set_confidence(1, 0.2)
        document.ledger.set_manual_mark(2, True)

        links = RefinementGateway(FakeProvider()).candidate_links(document)

        assert [(l.src_indices, l.tgt_indices) for l in links] == [([1], [1]), ([2], [2])]
        assert links[0].note == LOW_CONFIDENCE_NOTE
        assert links[1].note == MARKED_NOTE

    def test_provider_receives_flattened_text(self):
        document = make_document(2)
        document.ledger.set_confidence(0, 0.1)
        provider = FakeProvider()

        RefinementGateway(provider).refine(document)

        sources, targets, uncertain = provider.calls[0]
        assert sources == extract_all(document.sources)
        assert targets == ["Ziel 0.", "Ziel 1."]
        assert len(uncertain) == 1

    def test_nothing_uncertain_skips_provider(self):
        document = make_document(2)
        provider = FakeProvider()

        report = RefinementGateway(provider).refine(document)

        assert provider.calls == []
        assert report.remaining_uncertain == 0
        assert report.estimate is None

    def test_parse_error_leaves_document_unchanged(self):
        document = make_document()
        document.ledger.set_confidence(3, 0.4)
        before_targets = list(document.targets)
        provider = FakeProvider(error=ResponseParseError(message="bad reply"))

        with pytest.raises(ResponseParseError):
            RefinementGateway(provider).refine(document)

        assert document.targets == before_targets
        assert document.ledger.get(3).confidence == pytest.approx(0.4)
        assert not document.ledger.get(3).ai_reviewed

    def test_out_of_range_suggestion_updates_without_swap(self):
        document = make_document(4)
        document.ledger.set_confidence(1, 0.3)
        provider = FakeProvider(links=[AlignmentLink([1], [9], 0.8, "x", True)])

        report = RefinementGateway(provider).refine(document)

        assert report.swapped_count == 0
        assert extract(document.targets[1]) == "Ziel 1."
        assert document.ledger.get(1).confidence == pytest.approx(0.8)

    def test_estimate(self):
        document = make_document(4)
        document.ledger.set_confidence(0, 0.3)

        estimate = RefinementGateway(FakeProvider()).estimate(document)

        assert estimate.uncertain_segments == 1
        assert estimate.total_segments == 4
        assert estimate.provider == "Fake"
