"""
Logging configuration and error hierarchy for convertlab.

This module provides:
- Logging setup with console and file handlers
- Custom exception hierarchy for conversion failures
- Error categorization (user vs conversion vs system errors)
"""

import logging
import sys
import traceback
from typing import Any, Dict, Optional


class ConverterError(Exception):
    """Base error for all converter operations."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message} (Suggestion: {self.suggestion})"
        return self.message


class UserError(ConverterError):
    """Error caused by user input/action."""

    pass


class SystemError(ConverterError):
    """Error caused by system/environment issues."""

    def __init__(
        self,
        message: str,
        technical_details: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        self.technical_details = technical_details
        super().__init__(message, suggestion)


class ConversionError(ConverterError):
    """Error during conversion process."""

    pass


class NoPreviewFoundError(ConversionError):
    """Raw container scan ended without a qualifying JPEG marker."""

    pass


class DecodeError(ConversionError):
    """A delegated decoder rejected the input."""

    pass


class EncodeError(ConversionError):
    """A delegated encoder failed or produced no usable output."""

    pass


class DependencyError(SystemError):
    """Error when required dependency is missing."""

    pass


class DiskSpaceError(SystemError):
    """Error when insufficient disk space."""

    pass


class FormatNotSupportedError(UserError):
    """Error when requested format is not supported."""

    pass


class InvalidInputError(UserError):
    """Error when user input is invalid."""

    pass


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging configuration for convertlab.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional path to log file
        format_string: Optional custom format string

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("convertlab")
    logger.setLevel(level)
    logger.handlers.clear()

    fmt = format_string or "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt, datefmt=datefmt)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Module name (e.g., 'pcm', 'batch')

    Returns:
        Logger instance for the module
    """
    return logging.getLogger(f"convertlab.{name}")


def log_conversion_error(
    logger: logging.Logger, error: Exception, include_traceback: bool = True
) -> None:
    """Log an error with appropriate formatting.

    Args:
        logger: Logger instance
        error: Exception to log
        include_traceback: Whether to include stack trace
    """
    logger.error(f"Error occurred: {error}")

    if isinstance(error, ConverterError) and error.suggestion:
        logger.info(f"Suggestion: {error.suggestion}")

    if isinstance(error, SystemError) and error.technical_details:
        logger.debug(f"Technical details: {error.technical_details}")

    if include_traceback:
        logger.debug("".join(traceback.format_exception(type(error), error, error.__traceback__)))


def log_conversion_start(
    logger: logging.Logger, source_file: str, target_format: str, **kwargs: Any
) -> None:
    """Log the start of a conversion operation."""
    logger.info(f"Starting conversion: {source_file} -> {target_format}")
    for key, value in kwargs.items():
        logger.debug(f"  {key}: {value}")


def log_conversion_complete(
    logger: logging.Logger,
    success: bool,
    duration_seconds: float,
    output_file: Optional[str] = None,
    **kwargs: Dict[str, Any],
) -> None:
    """Log the completion of a conversion operation.

    Args:
        logger: Logger instance
        success: Whether conversion succeeded
        duration_seconds: Duration in seconds
        output_file: Name or path of the output (if success)
        **kwargs: Additional metadata
    """
    status = "✓ SUCCESS" if success else "✗ FAILED"
    logger.info(f"{status} - Conversion completed in {duration_seconds:.2f}s")
    if output_file:
        logger.info(f"  Output: {output_file}")
    for key, value in kwargs.items():
        logger.info(f"  {key}: {value}")
