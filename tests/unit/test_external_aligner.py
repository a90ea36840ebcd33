"""Unit tests for the hunalign adapter."""

import os
import stat
import sys
import tempfile

import pytest

from tm_alignment.alignment.external_aligner import (
    COMPLEX_LINK_CEILING,
    DEFAULT_CONFIDENCE,
    HunalignBackend,
    parse_output,
    parse_range,
)
from tm_alignment.exceptions import BackendError, BackendUnavailable


posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as the binary")


def _script(tmp_path, body: str) -> str:
    path = tmp_path / "fake-hunalign"
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


class TestParseRange:
    """Tests for 1-based range fields."""

    def test_single_number(self):
        assert parse_range("3") == [2]

    def test_hyphen_joined(self):
        assert parse_range("2-3") == [1, 2]

    def test_empty_field(self):
        assert parse_range("  ") == []

    def test_non_numeric_raises(self):
        with pytest.raises(ValueError):
            parse_range("x")


class TestParseOutput:
    """Tests for parsing aligner stdout."""

    def test_one_to_one_line(self):
        """Test a plain 1:1 line with explicit confidence."""
        links = parse_output(["1\t1\t0.9"])

        assert len(links) == 1
        assert links[0].src_indices == [0]
        assert links[0].tgt_indices == [0]
        assert links[0].confidence == pytest.approx(0.9)
        assert links[0].note == "1:1 (Hunalign)"

    def test_complex_link_is_capped(self):
        """Test that non-1:1 links never exceed the ceiling."""
        links = parse_output(["2-3\t2\t0.9"])

        assert links[0].src_indices == [1, 2]
        assert links[0].tgt_indices == [1]
        assert links[0].confidence == pytest.approx(COMPLEX_LINK_CEILING)
        assert links[0].note == "2:1 (Hunalign - NEEDS REVIEW)"

    def test_missing_confidence_uses_default(self):
        """Test that a missing third field gives the default confidence."""
        links = parse_output(["4\t\t"])

        assert links[0].src_indices == [3]
        assert links[0].tgt_indices == []
        assert links[0].confidence == pytest.approx(DEFAULT_CONFIDENCE)

    def test_confidence_is_clamped(self):
        links = parse_output(["1\t1\t1.7"])

        assert links[0].confidence == 1.0

    def test_invalid_lines_are_skipped(self):
        """Test that malformed lines are dropped and parsing continues."""
        links = parse_output(["garbage", "a\tb", "", "1\t1\t0.8"])

        assert len(links) == 1
        assert links[0].confidence == pytest.approx(0.8)


class TestHunalignBackend:
    """Tests for the process-based backend."""

    def test_unavailable_without_path(self):
        backend = HunalignBackend(None)

        assert not backend.is_available()
        with pytest.raises(BackendUnavailable):
            backend.align(["a"], ["b"])

    def test_unavailable_when_missing(self, tmp_path):
        backend = HunalignBackend(str(tmp_path / "missing"))

        assert not backend.is_available()

    @posix_only
    def test_unavailable_when_not_executable(self, tmp_path):
        path = tmp_path / "hunalign"
        path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
        path.chmod(0o644)

        assert not HunalignBackend(str(path)).is_available()

    @posix_only
    def test_align_parses_binary_output(self, tmp_path):
        """Test a full run against a fake binary echoing a fixed alignment."""
        binary = _script(
            tmp_path,
            'if [ "$1" = "--help" ]; then exit 0; fi\n'
            "printf '1\\t1\\t0.9\\n2\\t2-3\\t0.8\\n'\n",
        )
        backend = HunalignBackend(binary, "dict.dic", timeout=10)

        assert backend.is_available()
        links = backend.align(["One.", "Two."], ["Un.", "Deux", "trois."])

        assert [link.src_indices for link in links] == [[0], [1]]
        assert [link.tgt_indices for link in links] == [[0], [1, 2]]
        assert links[1].confidence == pytest.approx(COMPLEX_LINK_CEILING)

    @posix_only
    def test_input_files_hold_one_segment_per_line(self, tmp_path):
        """Test that embedded newlines are flattened in the temp files."""
        capture = tmp_path / "captured.txt"
        binary = _script(
            tmp_path,
            f'cat "$5" > "{capture}"\n'
            "printf '1\\t1\\t0.9\\n'\n",
        )
        backend = HunalignBackend(binary, "dict.dic", timeout=10)

        backend.align(["Line one\nstill one"], ["Une"])

        assert capture.read_text(encoding="utf-8") == "Line one still one\n"

    @posix_only
    def test_temp_files_are_removed(self, tmp_path):
        """Test that the per-run input files do not outlive the run."""
        listing = tmp_path / "paths.txt"
        binary = _script(
            tmp_path,
            f'echo "$5" > "{listing}"\necho "$6" >> "{listing}"\n'
            "printf '1\\t1\\t0.9\\n'\n",
        )

        HunalignBackend(binary, "dict.dic", timeout=10).align(["a"], ["b"])

        for path in listing.read_text(encoding="utf-8").split():
            assert not os.path.exists(path)

    @posix_only
    def test_unwritable_input_removes_temp_files(self, tmp_path, monkeypatch):
        """Test that a failed input write leaves no file behind."""
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(scratch))
        binary = _script(tmp_path, "printf '1\\t1\\t0.9\\n'\n")

        with pytest.raises(BackendError) as exc_info:
            HunalignBackend(binary, "dict.dic", timeout=10).align(["fine"], ["bad \ud800"])

        assert "Cannot write aligner input" in exc_info.value.message
        assert list(scratch.iterdir()) == []

    @posix_only
    def test_failed_run_without_output_raises(self, tmp_path):
        binary = _script(tmp_path, "echo broken >&2\nexit 3\n")

        with pytest.raises(BackendError) as exc_info:
            HunalignBackend(binary, "dict.dic", timeout=10).align(["a"], ["b"])

        assert "exit code 3" in exc_info.value.message

    @posix_only
    def test_failed_run_with_output_keeps_links(self, tmp_path):
        binary = _script(tmp_path, "printf '1\\t1\\t0.9\\n'\nexit 1\n")

        links = HunalignBackend(binary, "dict.dic", timeout=10).align(["a"], ["b"])

        assert len(links) == 1

    @posix_only
    def test_timeout_raises_backend_error(self, tmp_path):
        binary = _script(tmp_path, "exec sleep 5\n")

        with pytest.raises(BackendError) as exc_info:
            HunalignBackend(binary, "dict.dic", timeout=0.5).align(["a"], ["b"])

        assert "timed out" in exc_info.value.message
