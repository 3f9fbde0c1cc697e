"""
Logging helpers shared by every module of the package.

Modules obtain their logger with `get_logger(__name__)`; applications that
want console output call `setup_logging()` once.
"""

import logging
from typing import Optional

from colorama import Fore, Style, init

init()


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name of each record."""

    COLORS = {
        'DEBUG': Fore.BLUE,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT
    }

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{Style.RESET_ALL}"
        return super().format(record)


def setup_logging(log_level: str = 'INFO') -> logging.Handler:
    """
    Configures the package logger with a coloured console handler.

    Returns the installed handler so callers (and tests) can remove it.
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {log_level}')

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColoredFormatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    package_logger = logging.getLogger('mlis')
    package_logger.setLevel(numeric_level)
    package_logger.addHandler(console_handler)
    return console_handler


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger for the specified module."""
    return logging.getLogger(name)
