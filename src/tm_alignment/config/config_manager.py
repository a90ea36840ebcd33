"""Configuration for the alignment service.

String properties are resolved in this order:

1. explicit overrides handed to ``Configuration`` (process properties),
2. a properties file (``key=value`` or ``key: value`` lines, ``#``/``!``
   comments, backslash continuation) located by the ``tm_alignment.config``
   override or the ``TM_ALIGNMENT_CONFIG`` environment variable, default
   ``config.properties``; a missing file is tolerated,
3. the environment variable named after the key with dots replaced by
   underscores, upper-cased (``claude.apiKey`` -> ``CLAUDE_APIKEY``),
4. the built-in default.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .models import (
    SUPPORTED_PROVIDERS,
    AlignerSettings,
    ConfigurationError,
    ProviderSettings,
    ServerSettings,
    ValidationResult,
)


logger = logging.getLogger(__name__)

CONFIG_PATH_KEY = "tm_alignment.config"
CONFIG_PATH_ENV = "TM_ALIGNMENT_CONFIG"
DEFAULT_CONFIG_FILE = "config.properties"

DEFAULTS: Dict[str, str] = {
    "server.port": "8040",
    "server.bindAddress": "127.0.0.1",
    "server.maxThreads": "10",
    "server.threadTimeout": "20",
    "server.queueSize": "100",
    "ai.provider": "claude",
    "ai.timeout": "60",
    "claude.apiKey": "",
    "claude.apiUrl": "https://api.anthropic.com/v1/messages",
    "claude.model": "claude-sonnet-4-20250514",
    "claude.inputPrice": "3.0",
    "claude.outputPrice": "15.0",
    "openai.apiKey": "",
    "openai.apiUrl": "https://api.openai.com/v1/chat/completions",
    "openai.model": "gpt-4-turbo-preview",
    "openai.inputPrice": "10.0",
    "openai.outputPrice": "30.0",
    "aligner.path": "",
    "aligner.dictionary": "",
    "aligner.timeout": "120",
    "audit.databaseUrl": "",
    "logging.level": "INFO",
}

# Conventional variable names consulted after the derived one.
FALLBACK_ENV: Dict[str, tuple] = {
    "claude.apiKey": ("CLAUDE_API_KEY", "ANTHROPIC_API_KEY"),
    "openai.apiKey": ("OPENAI_API_KEY",),
}

SECRET_KEYS = ("claude.apiKey", "openai.apiKey")


def env_name(key: str) -> str:
    """Environment variable name for a property key."""
    return key.replace(".", "_").upper()


def parse_properties(text: str) -> Dict[str, str]:
    """
    Parse Java-style properties text.

    Args:
        text: File content.

    Returns:
        Mapping of keys to raw string values.
    """
    properties: Dict[str, str] = {}
    logical = ""
    for raw in text.splitlines():
        line = raw.strip()
        if not logical and (not line or line[0] in "#!"):
            continue
        if line.endswith("\\") and not line.endswith("\\\\"):
            logical += line[:-1]
            continue
        logical += line
        key, value = _split_property(logical)
        if key:
            properties[key] = value
        logical = ""
    if logical:
        key, value = _split_property(logical)
        if key:
            properties[key] = value
    return properties


def _split_property(line: str):
    positions = [p for p in (line.find("="), line.find(":")) if p != -1]
    if positions:
        cut = min(positions)
        return line[:cut].strip(), line[cut + 1:].strip()
    parts = line.split(None, 1)
    if len(parts) == 2:
        return parts[0], parts[1].strip()
    return line.strip(), ""


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "****"
    return value[:4] + "****" + value[-4:]


class Configuration:
    """
    Resolved configuration of one service instance.

    Typed getters fall back to the default (with a warning) when a value
    cannot be parsed.
    """

    def __init__(
        self,
        overrides: Optional[Mapping[str, str]] = None,
        environ: Optional[Mapping[str, str]] = None,
        config_path: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize the configuration.

        Args:
            overrides: Highest-priority properties.
            environ: Environment mapping; defaults to ``os.environ``.
            config_path: Properties file; resolved from overrides/environment
                when omitted.
        """
        self._overrides: Dict[str, str] = dict(overrides or {})
        self._environ = environ if environ is not None else os.environ
        if config_path is None:
            config_path = (
                self._overrides.get(CONFIG_PATH_KEY)
                or self._environ.get(CONFIG_PATH_ENV)
                or DEFAULT_CONFIG_FILE
            )
        self.config_path = Path(config_path)
        self._file_properties = self._load_file(self.config_path)

    @staticmethod
    def _load_file(path: Path) -> Dict[str, str]:
        if not path.is_file():
            logger.debug(f"No configuration file at {path}")
            return {}
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
        properties = parse_properties(text)
        logger.info(f"Loaded {len(properties)} properties from {path}")
        return properties

    # =========================================================================
    # Lookup
    # =========================================================================

    def get(self, key: str, default: Optional[str] = None) -> str:
        """
        Resolve a string property.

        Args:
            key: Property key such as ``server.port``.
            default: Default used instead of the built-in one.

        Returns:
            The resolved value ("" when nothing is known).
        """
        if key in self._overrides:
            return self._overrides[key]
        if key in self._file_properties:
            return self._file_properties[key]
        value = self._environ.get(env_name(key))
        if value is not None:
            return value
        for name in FALLBACK_ENV.get(key, ()):
            value = self._environ.get(name)
            if value:
                return value
        if default is not None:
            return default
        return DEFAULTS.get(key, "")

    def get_int(self, key: str) -> int:
        value = self.get(key)
        try:
            return int(value.strip())
        except ValueError:
            logger.warning(f"Invalid integer for {key}: {value!r}, using default")
            return int(DEFAULTS[key])

    def get_float(self, key: str) -> float:
        value = self.get(key)
        try:
            return float(value.strip())
        except ValueError:
            logger.warning(f"Invalid number for {key}: {value!r}, using default")
            return float(DEFAULTS[key])

    def set(self, key: str, value: str) -> None:
        """Set an override at runtime."""
        self._overrides[key] = value

    # =========================================================================
    # Typed views
    # =========================================================================

    @property
    def server(self) -> ServerSettings:
        return ServerSettings(
            port=self.get_int("server.port"),
            bind_address=self.get("server.bindAddress"),
            max_threads=self.get_int("server.maxThreads"),
            thread_timeout=self.get_int("server.threadTimeout"),
            queue_size=self.get_int("server.queueSize"),
        )

    @property
    def ai_provider(self) -> str:
        return self.get("ai.provider").strip().lower()

    @property
    def ai_timeout(self) -> int:
        return self.get_int("ai.timeout")

    def provider(self, name: str) -> ProviderSettings:
        """Settings of the named provider (``claude`` or ``openai``)."""
        return ProviderSettings(
            name=name,
            api_key=self.get(f"{name}.apiKey").strip(),
            api_url=self.get(f"{name}.apiUrl"),
            model=self.get(f"{name}.model"),
            input_price=self.get_float(f"{name}.inputPrice"),
            output_price=self.get_float(f"{name}.outputPrice"),
        )

    @property
    def aligner(self) -> AlignerSettings:
        return AlignerSettings(
            path=self.get("aligner.path").strip(),
            dictionary=self.get("aligner.dictionary").strip(),
            timeout=self.get_int("aligner.timeout"),
        )

    @property
    def audit_database_url(self) -> str:
        return self.get("audit.databaseUrl").strip()

    @property
    def logging_level(self) -> str:
        return self.get("logging.level").strip().upper() or "INFO"

    # =========================================================================
    # Validation and export
    # =========================================================================

    def validate(self) -> ValidationResult:
        """
        Check the resolved values.

        Returns:
            ValidationResult with an error per violated constraint.
        """
        result = ValidationResult(is_valid=True)
        server = self.server
        if not 0 < server.port < 65536:
            result.add_error(f"server.port must be between 1 and 65535, got {server.port}")
        if server.max_threads < 1:
            result.add_error("server.maxThreads must be at least 1")
        if server.thread_timeout < 1:
            result.add_error("server.threadTimeout must be at least 1 second")
        if server.queue_size < 0:
            result.add_error("server.queueSize must not be negative")

        if self.ai_provider not in SUPPORTED_PROVIDERS:
            result.add_error(
                f"ai.provider must be one of {list(SUPPORTED_PROVIDERS)}, got '{self.ai_provider}'"
            )
        if self.ai_timeout <= 0:
            result.add_error("ai.timeout must be positive")
        for name in SUPPORTED_PROVIDERS:
            settings = self.provider(name)
            if settings.input_price < 0 or settings.output_price < 0:
                result.add_error(f"{name} prices must not be negative")
        if self.ai_provider in SUPPORTED_PROVIDERS and not self.provider(self.ai_provider).configured:
            result.add_warning(f"No API key configured for {self.ai_provider}; AI refinement is disabled")

        aligner = self.aligner
        if aligner.timeout <= 0:
            result.add_error("aligner.timeout must be positive")
        if aligner.path and not Path(aligner.path).is_file():
            result.add_warning(f"External aligner not found at {aligner.path}")
        return result

    def require_valid(self) -> ValidationResult:
        """Validate and raise ``ConfigurationError`` on failure."""
        result = self.validate()
        if not result.is_valid:
            raise ConfigurationError("Configuration validation failed", validation_result=result)
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Export every known key with secrets masked."""
        keys = sorted(set(DEFAULTS) | set(self._file_properties) | set(self._overrides))
        data = {}
        for key in keys:
            if key == CONFIG_PATH_KEY:
                continue
            value = self.get(key)
            data[key] = mask_secret(value) if key in SECRET_KEYS else value
        return data
