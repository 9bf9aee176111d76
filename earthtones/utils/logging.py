"""
Earthtones Structured Logging
Centralized logging configuration using loguru.
"""
import sys
from typing import Any, Dict, Optional

from loguru import logger

from earthtones.config import config


class StructuredLogger:
    """Structured logger for the earthtones pipeline."""

    def __init__(self, level: Optional[str] = None, configure: bool = True):
        """
        Initialize structured logger.

        Args:
            level: Minimum level of the stdout sink
            configure: Replace loguru's sinks with the stdout sink; when False
                messages go to whatever sinks the host application set up
        """
        self.level = level or config.LOG_LEVEL
        if configure:
            self._configure_logger()

    def _configure_logger(self):
        """Configure loguru logger with structured format."""
        logger.remove()
        logger.add(
            sys.stdout,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message} | {extra}",
            level=self.level,
            serialize=False,
        )

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        """Log info message with optional extra data."""
        logger.bind(**(extra or {})).info(message)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        """Log warning message with optional extra data."""
        logger.bind(**(extra or {})).warning(message)

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None):
        logger.bind(**(extra or {})).error(message)

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None):
        logger.bind(**(extra or {})).debug(message)


# Global logger instance
_logger: Optional[StructuredLogger] = None


def configure_logging(level: Optional[str] = None) -> StructuredLogger:
    """(Re)configure the global loguru sink and return the structured logger."""
    global _logger
    _logger = StructuredLogger(level)
    return _logger


def get_logger() -> StructuredLogger:
    """Get the global logger; sinks are left alone unless configure_logging ran."""
    global _logger
    if _logger is None:
        _logger = StructuredLogger(configure=False)
    return _logger
