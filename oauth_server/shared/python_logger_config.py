"""Python logging configuration for the OAuth authorization server.

Sets up console output for the ``oauth_server`` namespace. Records carry their
structured fields in ``record.fields`` (see ``logger.py``); the formatters here
render them either as ``key=value`` pairs or as one JSON object per line.

Environment Variables:
    LOG_LEVEL: Logging level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
    LOG_FORMAT: ``text`` (default) or ``json``
    PYTHON_LOG_FORMAT: Text log line format (default: see below)
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

ROOT_LOGGER_NAME = "oauth_server"

# TRACE sits below DEBUG
TRACE = 5

DEFAULT_TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_trace_logging() -> int:
    """Register the TRACE level with the logging module."""
    logging.addLevelName(TRACE, "TRACE")
    return TRACE


setup_trace_logging()


def _format_fields(fields: dict) -> str:
    return " ".join(f"{key}={value}" for key, value in fields.items() if value is not None)


class StructuredFormatter(logging.Formatter):
    """Plain text formatter that appends structured fields as key=value pairs."""

    def format(self, record):
        msg = super().format(record)
        fields = getattr(record, "fields", None)
        if fields:
            msg = f"{msg} | {_format_fields(fields)}"
        return msg


class ColoredFormatter(StructuredFormatter):
    """Colored formatter for console output."""

    # ANSI color codes
    COLORS = {
        'TRACE': '\033[90m',     # Dark gray
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        msg = super().format(record)
        color = self.COLORS.get(record.levelname, '')
        if color:
            msg = f"{color}{msg}{self.RESET}"
        return msg


class JsonFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": getattr(record, "component", None),
            "message": record.getMessage(),
        }
        fields = getattr(record, "fields", None)
        if fields:
            entry.update(fields)
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def resolve_level(log_level: str) -> int:
    """Convert a level name (including TRACE) to its numeric value."""
    log_level = log_level.upper()
    if log_level == 'TRACE':
        return TRACE
    return getattr(logging, log_level, logging.INFO)


def setup_python_logging(
    log_level: Optional[str] = None,
    use_colors: bool = True,
    log_format: Optional[str] = None
) -> logging.Logger:
    """Configure Python logging with console output.

    Args:
        log_level: Logging level (if None, reads LOG_LEVEL from env)
        use_colors: Whether to use colored output for TTY
        log_format: ``text`` or ``json`` (if None, reads LOG_FORMAT from env)

    Returns:
        Configured root logger
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')
    if log_format is None:
        log_format = os.getenv('LOG_FORMAT', 'text')

    level = resolve_level(log_level)

    # Remove any existing handlers to avoid duplicates
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    text_format = os.getenv('PYTHON_LOG_FORMAT', DEFAULT_TEXT_FORMAT)
    if log_format.lower() == 'json':
        formatter = JsonFormatter()
    elif use_colors and sys.stdout.isatty():
        formatter = ColoredFormatter(text_format)
    else:
        formatter = StructuredFormatter(text_format)
    console_handler.setFormatter(formatter)

    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)

    silence_noisy_loggers()

    root_logger.info(f"Python logging configured: level={log_level.upper()}, format={log_format}")
    return root_logger


def silence_noisy_loggers():
    """Reduce verbosity of noisy third-party loggers."""
    noisy_loggers = [
        'asyncio',
        'redis',
        'httpx',
        'httpcore',
        'hpack',
        'hypercorn.access',
        'hypercorn.error',
        'python_multipart',
        'python_multipart.multipart',
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
