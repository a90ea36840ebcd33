"""Unit tests for the Gale-Church baseline aligner."""

import pytest

from tm_alignment.alignment.gale_church import (
    TRANSITIONS,
    GaleChurchAligner,
    link_confidence,
    match_cost,
)
from tm_alignment.models.alignment import covers
from tm_alignment.models.enums import LinkShape


def _shape(link):
    return f"{len(link.src_indices)}:{len(link.tgt_indices)}"


class TestMatchCost:
    """Tests for the transition cost function."""

    def test_equal_lengths_cost_nothing_for_one_to_one(self):
        """Test that a 1:1 pair of equal length has zero cost."""
        assert match_cost(TRANSITIONS[0], 20, 20) == 0.0

    def test_length_penalty_grows_with_deviation(self):
        """Test that larger length differences cost more."""
        close = match_cost(TRANSITIONS[0], 20, 22)
        far = match_cost(TRANSITIONS[0], 20, 60)
        assert 0 < close < far

    def test_insertion_and_deletion_cost_only_penalty(self):
        """Test that one-sided transitions pay the fixed penalty."""
        deletion = next(t for t in TRANSITIONS if t.shape is LinkShape.DELETION)
        insertion = next(t for t in TRANSITIONS if t.shape is LinkShape.INSERTION)
        assert match_cost(deletion, 500, 0) == 450.0
        assert match_cost(insertion, 0, 500) == 450.0

    def test_zero_source_length_is_clamped(self):
        """Test that an empty source segment does not divide by zero."""
        assert match_cost(TRANSITIONS[0], 0, 3) > 0


class TestLinkConfidence:
    """Tests for the ratio-adjusted seed confidence."""

    def test_balanced_ratio_keeps_seed(self):
        assert link_confidence(TRANSITIONS[0], 10, 12) == pytest.approx(0.95)

    def test_ratio_above_two_is_reduced(self):
        assert link_confidence(TRANSITIONS[0], 10, 25) == pytest.approx(0.95 * 0.9)

    def test_ratio_above_three_is_reduced_more(self):
        assert link_confidence(TRANSITIONS[0], 10, 40) == pytest.approx(0.95 * 0.8)

    def test_deletion_keeps_seed(self):
        deletion = next(t for t in TRANSITIONS if t.shape is LinkShape.DELETION)
        assert link_confidence(deletion, 100, 0) == pytest.approx(0.5)


class TestGaleChurchAligner:
    """Tests for GaleChurchAligner.align."""

    def test_perfect_one_to_one(self):
        """Test two short sentences pairing 1:1 with full seed confidence."""
        aligner = GaleChurchAligner()

        links = aligner.align(["Hello.", "World."], ["Hei.", "Verden."])

        assert len(links) == 2
        assert [link.src_indices for link in links] == [[0], [1]]
        assert [link.tgt_indices for link in links] == [[0], [1]]
        assert all(link.confidence == pytest.approx(0.95) for link in links)

    def test_merge_on_target(self):
        """Test two source sentences merged into one target sentence."""
        aligner = GaleChurchAligner()

        links = aligner.align(["A short one.", "And another."], ["En kort og en til."])

        assert len(links) == 1
        assert links[0].src_indices == [0, 1]
        assert links[0].tgt_indices == [0]
        assert links[0].confidence == pytest.approx(0.75)

    def test_deletion_of_unmatched_source(self):
        """Test that a source segment with no counterpart becomes a 1:0 link."""
        aligner = GaleChurchAligner()

        links = aligner.align(["Kept.", "x" * 4000], ["Kept."])

        assert [_shape(link) for link in links] == ["1:1", "1:0"]
        assert links[0].confidence == pytest.approx(0.95)
        assert links[1].confidence <= 0.5

    def test_empty_side_returns_no_links(self):
        """Test that an empty list on either side yields no links."""
        aligner = GaleChurchAligner()

        assert aligner.align([], ["a"]) == []
        assert aligner.align(["a"], []) == []

    def test_deterministic(self):
        """Test that identical input produces identical output."""
        aligner = GaleChurchAligner()
        sources = ["One.", "Two sentences here.", "Three!", "Four is a longer sentence."]
        targets = ["Un.", "Deux phrases ici.", "Trois ! Quatre est une phrase plus longue."]

        first = aligner.align(sources, targets)
        second = aligner.align(sources, targets)

        assert [(l.src_indices, l.tgt_indices, l.confidence) for l in first] == [
            (l.src_indices, l.tgt_indices, l.confidence) for l in second
        ]

    @pytest.mark.parametrize("sources, targets", [
        (["a" * 10, "b" * 30, "c" * 5], ["x" * 12, "y" * 28, "z" * 6]),
        (["a" * 10, "b" * 10, "c" * 10, "d" * 10], ["x" * 20, "y" * 20]),
        (["a" * 50], ["x" * 10, "y" * 10, "z" * 30]),
        (["short"], ["a much much longer target sentence than the source"]),
        (["a" * 7, "b" * 70, "c" * 700], ["x" * 700, "y" * 70, "z" * 7, "w" * 1]),
    ])
    def test_links_cover_both_sides_with_valid_shapes(self, sources, targets):
        """Test coverage, shape and confidence bounds on assorted inputs."""
        links = GaleChurchAligner().align(sources, targets)

        assert covers(links, len(sources), len(targets))
        for link in links:
            assert len(link.src_indices) <= 2 and len(link.tgt_indices) <= 2
            assert len(link.src_indices) + len(link.tgt_indices) > 0
            assert 0.0 <= link.confidence <= 1.0

    def test_notes_describe_shape(self):
        """Test that each link carries its transition description."""
        links = GaleChurchAligner().align(["Kept.", "x" * 4000], ["Kept."])

        assert links[0].note == "1:1 match"
        assert links[1].note == "Deletion (no target)"
