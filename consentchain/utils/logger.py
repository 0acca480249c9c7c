"""
Logging Configuration

Provides centralized logging with:
- Console handler
- Optional rotating file handler (prevents huge log files)
- Module-specific loggers
- Structured progress records for retried HGTP operations

Usage:
    from consentchain.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Policy version submitted")
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from ..config import ConfigManager, get_config


def setup_logging(
    log_dir: Optional[str] = None,
    log_file: str = "consentchain.log",
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    log_level: Union[int, str] = logging.INFO,
) -> logging.Logger:
    """
    Setup logging with console output and an optional rotating file handler.

    Args:
        log_dir: Directory for log files; no file handler when None
        log_file: Name of the log file
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
        log_level: Minimum log level to record

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    detailed_formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    simple_formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=log_path / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    return root_logger


def configure_logging(config: Optional[ConfigManager] = None) -> logging.Logger:
    """
    Setup logging from LOG_LEVEL / LOG_DIR unless the root logger already has
    handlers (installed by the host application or an earlier call).

    Args:
        config: Validated settings; the global ConfigManager when omitted

    Returns:
        Root logger

    Raises:
        ValidationError: If the configuration is invalid
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return root_logger

    config = config or get_config()
    return setup_logging(log_dir=config.LOG_DIR, log_level=config.LOG_LEVEL)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    Safe to call at import time: handlers are installed later by
    configure_logging, once configuration has been validated.

    Args:
        name: Usually __name__ from the calling module

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class RetryLogger:
    """
    Progress records for one retried operation.

    Every record is prefixed with ``[operation_name]`` and carries its fields
    in ``extra`` so structured handlers can pick them up.
    """

    def __init__(self, operation_name: str, logger: Optional[logging.Logger] = None):
        self.operation_name = operation_name
        if logger is None:
            configure_logging()
            logger = get_logger("consentchain.retry")
        self.logger = logger

    def _format_message(self, message: str) -> str:
        return f"[{self.operation_name}] {message}"

    def _extra(self, **fields) -> dict:
        fields["operation"] = self.operation_name
        return fields

    def attempt_failed(
        self,
        attempt: int,
        error: BaseException,
        classification: str,
        will_retry: bool,
    ):
        """Log a failed attempt (attempt is 1-based)."""
        summary = str(error) or type(error).__name__
        self.logger.warning(
            self._format_message(
                f"Attempt {attempt} failed: {summary} "
                f"(classification={classification}, will_retry={will_retry})"
            ),
            extra=self._extra(
                attempt=attempt,
                error_summary=summary,
                error_class=type(error).__name__,
                classification=classification,
                will_retry=will_retry,
            ),
        )

    def retry_scheduled(self, attempt: int, delay_ms: float):
        self.logger.info(
            self._format_message(f"Retrying in {delay_ms:.0f}ms..."),
            extra=self._extra(attempt=attempt, delay_ms=delay_ms),
        )

    def gave_up(self, attempts: int, classification: str):
        self.logger.error(
            self._format_message(
                f"Giving up after {attempts} attempts ({classification})"
            ),
            extra=self._extra(attempts=attempts, classification=classification),
        )

    def cancelled(self, attempts: int):
        self.logger.warning(
            self._format_message(f"Retry loop cancelled after {attempts} attempts"),
            extra=self._extra(attempts=attempts),
        )

    def succeeded_after_retry(self, attempts: int):
        self.logger.info(
            self._format_message(f"Succeeded on attempt {attempts}"),
            extra=self._extra(attempts=attempts),
        )
