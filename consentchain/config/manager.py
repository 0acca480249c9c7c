"""
Configuration Manager Module

Loads and validates the settings the HGTP integration needs from environment
variables (optionally seeded from a .env file).

Features:
- Type validation (timeouts must be integers, URLs must be http(s))
- Range validation (e.g., request timeout between 1 and 300 seconds)
- Singleton pattern for global access
"""

import logging
import os
from typing import Optional, Dict, Any
from urllib.parse import urlparse

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class ValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


class ConfigManager:
    """
    Centralized configuration for the metagraph connection.

    Uses singleton pattern to ensure only one instance exists globally.
    """

    _instance: Optional["ConfigManager"] = None

    # ==========================================================================
    # METAGRAPH ENDPOINTS
    # ==========================================================================

    # Metagraph L0 node (snapshot reads)
    # Default: http://localhost:9200
    METAGRAPH_L0_URL: str

    # Metagraph Data L1 node (policy / consent submissions)
    # Default: http://localhost:9400
    METAGRAPH_L1_URL: str

    # Global L0 node of the hosting network
    # Default: http://localhost:9000
    GLOBAL_L0_URL: str

    # Metagraph identifier, informational only
    # Default: empty
    METAGRAPH_ID: str

    # ==========================================================================
    # TIMEOUTS
    # ==========================================================================

    # Per-request timeout for HGTP calls (in seconds)
    # Default: 10 seconds
    # Validation: Must be > 0 and <= 300
    HGTP_REQUEST_TIMEOUT_SECONDS: int

    # ==========================================================================
    # LOGGING
    # ==========================================================================

    # Minimum log level name
    # Default: INFO
    LOG_LEVEL: str

    # Directory for rotating log files; console only when unset
    LOG_DIR: Optional[str]

    def __init__(self):
        """Initialize ConfigManager with environment variables."""
        self._load_and_validate()

    def _load_and_validate(self) -> None:
        """Load all configuration from environment and validate."""
        self.METAGRAPH_L0_URL = self._load_url(
            "METAGRAPH_L0_URL", "http://localhost:9200"
        )
        self.METAGRAPH_L1_URL = self._load_url(
            "METAGRAPH_L1_URL", "http://localhost:9400"
        )
        self.GLOBAL_L0_URL = self._load_url("GLOBAL_L0_URL", "http://localhost:9000")
        self.METAGRAPH_ID = os.environ.get("METAGRAPH_ID", "")

        self.HGTP_REQUEST_TIMEOUT_SECONDS = self._load_int(
            "HGTP_REQUEST_TIMEOUT_SECONDS",
            10,
            min_val=1,
            max_val=300,
            description="HGTP request timeout (seconds)",
        )

        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValidationError(f"LOG_LEVEL: Unknown log level '{log_level}'")
        self.LOG_LEVEL = log_level
        self.LOG_DIR = os.environ.get("LOG_DIR") or None

    @staticmethod
    def _load_url(env_var: str, default: str) -> str:
        """
        Load an http(s) base URL, stripping any trailing slash.

        Raises:
            ValidationError: If the value is not an absolute http(s) URL
        """
        value = os.environ.get(env_var, default).strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(
                f"{env_var}: Expected http(s) URL, got '{value}'"
            )
        return value.rstrip("/")

    @staticmethod
    def _load_int(
        env_var: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
        description: str = "",
    ) -> int:
        """
        Load and validate an integer configuration value.

        Args:
            env_var: Environment variable name
            default: Default value if not set
            min_val: Minimum allowed value (inclusive)
            max_val: Maximum allowed value (inclusive)
            description: Human-readable description for error messages

        Returns:
            Validated integer value

        Raises:
            ValidationError: If value fails type or range validation
        """
        value_str = os.environ.get(env_var)

        if value_str is None:
            value = default
        else:
            try:
                value = int(value_str)
            except ValueError:
                raise ValidationError(
                    f"{env_var}: Expected integer, got '{value_str}' "
                    f"({description})"
                )

        if min_val is not None and value < min_val:
            raise ValidationError(
                f"{env_var}: {value} is below minimum {min_val} "
                f"({description})"
            )

        if max_val is not None and value > max_val:
            raise ValidationError(
                f"{env_var}: {value} exceeds maximum {max_val} "
                f"({description})"
            )

        return value

    def to_dict(self) -> Dict[str, Any]:
        """Convert all configuration to dictionary."""
        return {
            "METAGRAPH_L0_URL": self.METAGRAPH_L0_URL,
            "METAGRAPH_L1_URL": self.METAGRAPH_L1_URL,
            "GLOBAL_L0_URL": self.GLOBAL_L0_URL,
            "METAGRAPH_ID": self.METAGRAPH_ID,
            "HGTP_REQUEST_TIMEOUT_SECONDS": self.HGTP_REQUEST_TIMEOUT_SECONDS,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_DIR": self.LOG_DIR,
        }

    @classmethod
    def get_instance(cls) -> "ConfigManager":
        """
        Get or create singleton instance of ConfigManager.

        Raises:
            ValidationError: If configuration validation fails
        """
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)."""
        cls._instance = None


def get_config() -> ConfigManager:
    """
    Get the global ConfigManager instance.

    Raises:
        ValidationError: If configuration validation fails
    """
    return ConfigManager.get_instance()
