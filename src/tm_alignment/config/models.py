"""Data models for configuration management."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


SUPPORTED_PROVIDERS = ("claude", "openai")


@dataclass
class ServerSettings:
    """HTTP server settings."""
    port: int = 8040
    bind_address: str = "127.0.0.1"
    max_threads: int = 10
    thread_timeout: int = 20
    queue_size: int = 100

    def uvicorn_options(self) -> Dict[str, Any]:
        """
        Keyword arguments for ``uvicorn.run``.

        Requests beyond ``max_threads`` running plus ``queue_size`` waiting
        are refused with 503; ``thread_timeout`` bounds idle keep-alive
        connections.
        """
        return {
            "host": self.bind_address,
            "port": self.port,
            "limit_concurrency": self.max_threads + self.queue_size,
            "backlog": self.queue_size,
            "timeout_keep_alive": self.thread_timeout,
        }


@dataclass
class ProviderSettings:
    """
    Settings of one language-model provider.

    Prices are in USD per million tokens.
    """
    name: str
    api_key: str = ""
    api_url: str = ""
    model: str = ""
    input_price: float = 0.0
    output_price: float = 0.0

    @property
    def configured(self) -> bool:
        return bool(self.api_key.strip())


@dataclass
class AlignerSettings:
    """External aligner settings; an empty path means unavailable."""
    path: str = ""
    dictionary: str = ""
    timeout: int = 120


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Merge another validation result into this one."""
        return ValidationResult(
            is_valid=self.is_valid and other.is_valid,
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    def __init__(self, message: str, validation_result: Optional[ValidationResult] = None):
        super().__init__(message)
        self.message = message
        self.validation_result = validation_result
