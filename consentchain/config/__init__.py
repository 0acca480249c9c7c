"""Configuration module for consentchain."""

from .manager import (
    ConfigManager,
    get_config,
    ValidationError,
)

__all__ = [
    "ConfigManager",
    "get_config",
    "ValidationError",
]
