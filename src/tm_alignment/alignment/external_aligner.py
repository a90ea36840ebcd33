"""Adapter around the hunalign dictionary-assisted sentence aligner.

The binary is driven through temporary UTF-8 text files (one segment per
line) and answers with tab-separated ranges on stdout:

    <src-range> TAB <tgt-range> [TAB <confidence>]

Ranges are 1-based, either a single number or hyphen-joined numbers.
"""

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

from ..exceptions import BackendError, BackendUnavailable
from ..interfaces.aligner import IExternalAlignerBackend
from ..models.alignment import AlignmentLink


logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.6
# Non-1:1 links never leave the adapter above this confidence.
COMPLEX_LINK_CEILING = 0.70
DEFAULT_TIMEOUT = 120
PROBE_EXIT_CODES = (0, 1, 255)


def _clean_line(segment: str) -> str:
    return segment.replace("\n", " ").replace("\r", " ").strip()


def parse_range(value: str) -> List[int]:
    """
    Convert a 1-based range field to 0-based indices.

    Args:
        value: ``"3"``, ``"2-3"`` or empty.

    Returns:
        List of 0-based indices; empty for an empty field.

    Raises:
        ValueError: If a part is not an integer.
    """
    value = value.strip()
    if not value:
        return []
    return [int(part.strip()) - 1 for part in value.split("-")]


def link_note(src_count: int, tgt_count: int, backend: str = "Hunalign") -> str:
    if src_count == 1 and tgt_count == 1:
        return f"1:1 ({backend})"
    return f"{src_count}:{tgt_count} ({backend} - NEEDS REVIEW)"


def parse_output(lines: List[str], backend: str = "Hunalign") -> List[AlignmentLink]:
    """
    Parse aligner stdout into links.

    Lines with fewer than two fields or non-numeric fields are skipped
    with a warning.

    Args:
        lines: Output lines.
        backend: Label used in link notes.

    Returns:
        Parsed links in output order.
    """
    links: List[AlignmentLink] = []
    for line in lines:
        if not line.strip():
            continue
        parts = line.rstrip("\r\n").split("\t")
        if len(parts) < 2:
            logger.warning(f"Invalid aligner output line: {line!r}")
            continue
        try:
            src_indices = parse_range(parts[0])
            tgt_indices = parse_range(parts[1])
            confidence = float(parts[2]) if len(parts) >= 3 and parts[2].strip() else DEFAULT_CONFIDENCE
        except ValueError:
            logger.warning(f"Failed to parse aligner output line: {line!r}")
            continue

        confidence = max(0.0, min(1.0, confidence))
        link = AlignmentLink(
            src_indices,
            tgt_indices,
            confidence,
            link_note(len(src_indices), len(tgt_indices), backend),
        )
        if not link.is_one_to_one():
            link.confidence = min(link.confidence, COMPLEX_LINK_CEILING)
        links.append(link)

    logger.info(f"{backend} produced {len(links)} alignment pairs")
    return links


class HunalignBackend(IExternalAlignerBackend):
    """
    Process-based external aligner.

    Attributes:
        binary_path: Path to the hunalign executable.
        dictionary_path: Bilingual dictionary passed to ``-realign``.
        timeout: Wall-time bound of one invocation in seconds.
    """

    def __init__(
        self,
        binary_path: Optional[str],
        dictionary_path: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.binary_path = binary_path or ""
        self.dictionary_path = dictionary_path or ""
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "Hunalign"

    def is_available(self) -> bool:
        """
        Probe the binary: it must exist, be executable and answer ``--help``.

        Returns:
            True if the binary looks usable.
        """
        if not self.binary_path:
            return False
        path = Path(self.binary_path)
        if not path.is_file():
            logger.warning(f"Aligner binary not found at: {self.binary_path}")
            return False
        if not os.access(path, os.X_OK):
            logger.warning(f"Aligner binary not executable at: {self.binary_path}")
            return False
        try:
            completed = subprocess.run(
                [self.binary_path, "--help"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Error checking aligner availability: {e}")
            return False
        if completed.returncode in PROBE_EXIT_CODES:
            return True
        logger.warning(f"Aligner returned unexpected exit code: {completed.returncode}")
        return False

    def align(self, sources: List[str], targets: List[str]) -> List[AlignmentLink]:
        """
        Run the binary on two segment lists.

        Args:
            sources: Source-language segment texts.
            targets: Target-language segment texts.

        Returns:
            Links parsed from the binary's output.

        Raises:
            BackendUnavailable: If the binary is missing or not executable.
            BackendError: If the run fails, times out or yields no output.
        """
        if not self.binary_path or not os.access(self.binary_path, os.X_OK):
            raise BackendUnavailable(
                message="External aligner binary is not available",
                file_path=self.binary_path or None,
            )

        source_file = self._write_temp_file(sources)
        try:
            target_file = self._write_temp_file(targets)
            try:
                return self._run(source_file, target_file)
            finally:
                os.unlink(target_file)
        finally:
            os.unlink(source_file)

    def _write_temp_file(self, segments: List[str]) -> str:
        handle, path = tempfile.mkstemp(prefix="hunalign", suffix=".txt")
        try:
            with os.fdopen(handle, "w", encoding="utf-8", newline="\n") as f:
                for segment in segments:
                    f.write(_clean_line(segment))
                    f.write("\n")
        except (OSError, UnicodeError) as e:
            os.unlink(path)
            raise BackendError(message=f"Cannot write aligner input: {e}") from e
        return path

    def _run(self, source_file: str, target_file: str) -> List[AlignmentLink]:
        command = [
            self.binary_path,
            "-text",
            "-utf",
            "-realign",
            self.dictionary_path,
            source_file,
            target_file,
        ]
        logger.info(f"Running aligner: {' '.join(command)}")
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise BackendError(
                message=f"External aligner timed out after {self.timeout} seconds",
                file_path=self.binary_path,
            ) from e
        except OSError as e:
            raise BackendUnavailable(
                message=f"External aligner could not be started: {e}",
                file_path=self.binary_path,
            ) from e

        links = parse_output(completed.stdout.splitlines(), self.name)
        if completed.returncode != 0:
            logger.warning(
                f"Aligner exit code: {completed.returncode}; stderr: {completed.stderr.strip()}"
            )
            if not links:
                raise BackendError(
                    message=f"External aligner failed with exit code {completed.returncode}",
                    file_path=self.binary_path,
                    details={"stderr": completed.stderr},
                )
        return links
