"""Configuration module for the alignment service."""

from .config_manager import Configuration, parse_properties
from .models import (
    AlignerSettings,
    ConfigurationError,
    ProviderSettings,
    ServerSettings,
    ValidationResult,
)

__all__ = [
    "Configuration",
    "parse_properties",
    "AlignerSettings",
    "ConfigurationError",
    "ProviderSettings",
    "ServerSettings",
    "ValidationResult",
]
