"""Aligner interfaces."""

from abc import ABC, abstractmethod
from typing import List

from ..models.alignment import AlignmentLink


class ISentenceAligner(ABC):
    """
    Abstract interface for sentence aligners.

    Implementations map two ordered lists of segment texts to a link
    sequence covering both lists.
    """

    @abstractmethod
    def align(self, sources: List[str], targets: List[str]) -> List[AlignmentLink]:
        """
        Align two lists of segment texts.

        Args:
            sources: Source-language segment texts.
            targets: Target-language segment texts.

        Returns:
            Ordered alignment links.
        """
        pass


class IExternalAlignerBackend(ISentenceAligner):
    """
    Aligner backed by a separate capability that may be missing.

    Callers probe ``is_available`` before aligning; ``align`` raises
    ``BackendUnavailable`` or ``BackendError`` when the backend cannot
    produce a result.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short label used in provenance notes."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check whether the backend can run.

        Returns:
            True if ``align`` may be called.
        """
        pass
