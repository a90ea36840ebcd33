"""Error kinds raised across the alignment system."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class AlignmentError(Exception):
    """
    Base exception for alignment system errors.

    Attributes:
        message: Human-readable error description.
        file_path: Path to the file involved, if any.
        location: Specific location (segment id, line number, endpoint).
        details: Additional error details.
    """
    message: str
    file_path: Optional[str] = None
    location: Optional[str] = None
    details: Optional[dict] = field(default_factory=dict)

    def __post_init__(self):
        if self.details is None:
            self.details = {}
        super().__init__(str(self))

    def __str__(self) -> str:
        parts = [self.message]
        if self.file_path:
            parts.append(f"File: {self.file_path}")
        if self.location:
            parts.append(f"Location: {self.location}")
        return " | ".join(parts)

    @property
    def kind(self) -> str:
        """Name of the error kind."""
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.kind,
            "message": self.message,
            "file_path": self.file_path,
            "location": self.location,
            "details": self.details,
        }


@dataclass
class ConverterFailure(AlignmentError):
    """Upstream segment extraction failed; the alignment run is aborted."""


@dataclass
class MalformedSegmentTree(AlignmentError):
    """Segment markup could not be parsed; the document is left unchanged."""


@dataclass
class BackendUnavailable(AlignmentError):
    """The external aligner binary is missing or not executable."""


@dataclass
class BackendError(AlignmentError):
    """A backend ran but failed to produce a usable result."""


@dataclass
class HttpError(BackendError):
    """The language-model endpoint answered with a non-200 status."""
    status_code: int = 0


@dataclass
class BackendUnconfigured(AlignmentError):
    """AI refinement was requested without an API key."""


@dataclass
class ResponseParseError(AlignmentError):
    """The language-model reply is not JSON matching the alignment schema."""


@dataclass
class Busy(AlignmentError):
    """A worker of the same operation class is already running."""
    operation: str = ""


@dataclass
class IndexOutOfRange(AlignmentError):
    """An editor precondition was violated; the operation was not applied."""
    side: str = ""
    index: int = -1
    size: int = 0


@dataclass
class InvalidPattern(AlignmentError):
    """A replace-text pattern does not compile."""


@dataclass
class IoError(AlignmentError):
    """A file could not be read or written."""


@dataclass
class NoDocument(AlignmentError):
    """An operation needs an open alignment but none is loaded."""
