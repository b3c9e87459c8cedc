"""
===================================================
Centralized logging configuration for the builder.
===================================================

Provides consistent logging setup for the CLI and for applications that
embed the query builder:
- File and console output
- Configurable log levels
- Colored console output with level markers

Library modules (querybuilder.*, utils.*) only ever call
logging.getLogger(__name__); handlers are attached here, once, by the
application.

Example:
    >>> from core.logger import get_logger, setup_logging
    >>>
    >>> setup_logging(log_level='DEBUG', log_file='querybuilder.log')
    >>> logger = get_logger(__name__)
    >>> logger.debug("Compiled SQL: SELECT 1;")
"""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATEFMT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Formatter adding ANSI colors and a short marker to console records.

    Attributes:
        COLORS: Dict mapping log levels to ANSI color codes
        MARKERS: Dict mapping log levels to a one-character marker
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m'
    }

    MARKERS = {
        'DEBUG': '.',
        'INFO': '*',
        'WARNING': '!',
        'ERROR': 'x',
        'CRITICAL': '#'
    }

    def format(self, record):
        # Work on a copy so file handlers sharing the record stay uncolored
        record = logging.makeLogRecord(record.__dict__)
        levelname = record.levelname
        record.marker = self.MARKERS.get(levelname, ' ')
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        return super().format(record)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger instance for the specified module.

    Args:
        name: Logger name (typically __name__ of calling module)
        level: Optional logging level override (DEBUG/INFO/WARNING/ERROR/CRITICAL)

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if level:
        logger.setLevel(getattr(logging, level.upper()))

    return logger


def setup_logging(
    log_level: str = 'INFO',
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    console_output: bool = True,
    use_colors: bool = True
) -> None:
    """Configure the root logger with console and/or file handlers.

    Should be called once at application startup. Existing root handlers
    are replaced.

    Args:
        log_level: Logging level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        log_file: Optional log file name (e.g., 'querybuilder.log')
        log_dir: Optional log directory path (defaults to 'logs/')
        console_output: If True, output to console (stdout)
        use_colors: If True, use colored output for console

    Example:
        >>> setup_logging(log_level='DEBUG', log_file='qb.log', log_dir='/tmp')
    """
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        if use_colors:
            console_formatter = ColoredFormatter(
                '%(marker)s ' + DEFAULT_FORMAT,
                datefmt=DEFAULT_DATEFMT
            )
        else:
            console_formatter = logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)

        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir) if log_dir else Path('logs')
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT))
        root_logger.addHandler(file_handler)


def get_module_logger(module_name: str) -> logging.Logger:
    """Get a logger for a specific module (alias of get_logger without level)."""
    return logging.getLogger(module_name)
