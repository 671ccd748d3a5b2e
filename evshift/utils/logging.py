"""
Logging utilities for evshift
Provides structured logging and console setup
"""

import logging
import sys
from typing import Optional, Dict, Any
import json

import colorlog

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


class StructuredLogger:
    """Provides structured logging with metadata"""

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize structured logger

        Args:
            name: Logger name
            metadata: Default metadata to include in all logs
        """
        self.logger = logging.getLogger(name)
        self.metadata = metadata or {}

    def _format_message(self, message: str, **kwargs) -> str:
        """Format message with metadata"""
        data = {**self.metadata, **kwargs}
        if data:
            return f"{message} | {json.dumps(data, default=str)}"
        return message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message, **kwargs))


class _ConsoleHandler(logging.StreamHandler):
    """Marker class so repeated setup replaces our own handler only."""
    pass


def setup_console_logging(level: str = "INFO", color: bool = True,
                          fmt: str = DEFAULT_FORMAT) -> logging.Handler:
    """
    Setup console logging with optional color support

    Args:
        level: Logging level name
        color: Whether to use colored output when stderr is a terminal
        fmt: Log record format

    Returns:
        The installed handler
    """
    console_handler = _ConsoleHandler(sys.stderr)

    if color and sys.stderr.isatty():
        formatter = colorlog.ColoredFormatter(
            '%(log_color)s' + fmt + '%(reset)s',
            log_colors=LOG_COLORS,
        )
    else:
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, _ConsoleHandler):
            root_logger.removeHandler(handler)
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.addHandler(console_handler)
    return console_handler


def teardown_console_logging():
    """Remove the handler installed by setup_console_logging."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, _ConsoleHandler):
            root_logger.removeHandler(handler)
