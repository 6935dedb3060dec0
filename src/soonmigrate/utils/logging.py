"""
Logging configuration for soon-migrate.

Components log through children of the ``soonmigrate`` logger; the CLI
configures that logger once per command from its ``-v``/``--debug`` flags.
"""

import logging
import sys
from typing import Optional, TextIO

LOGGER_NAME = "soonmigrate"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def level_for_flags(verbose: bool = False, debug: bool = False) -> str:
    """
    Map CLI verbosity flags to a logging level name.

    Args:
        verbose: ``-v`` was passed
        debug: ``--debug`` was passed

    Returns:
        DEBUG, INFO or WARNING
    """
    if debug:
        return "DEBUG"
    return "INFO" if verbose else "WARNING"


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Configure the package logger with a single console handler.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream; standard output when omitted

    Returns:
        The ``soonmigrate`` logger
    """
    numeric_level = getattr(logging, level.upper())
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    # One handler per process, however many commands run
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(numeric_level)
    fmt = DEBUG_LOG_FORMAT if numeric_level <= logging.DEBUG else LOG_FORMAT
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or its ``soonmigrate.<name>`` child."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)
