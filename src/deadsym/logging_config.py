import logging
import os
import sys
from typing import Optional, TextIO

DEFAULT_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVEL_ENV = "DEADSYM_LOG_LEVEL"


def resolve_log_level(cli_level: Optional[str] = None, config_level: Optional[str] = None) -> str:
    """CLI flag wins, then the environment, then the config file."""
    for candidate in (cli_level, os.environ.get(LOG_LEVEL_ENV), config_level):
        if candidate:
            return candidate.upper()
    return DEFAULT_LOG_LEVEL


def setup_logging(level: str = DEFAULT_LOG_LEVEL, stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger with a single stream handler.

    Logs go to stderr by default since stdout carries the report. Existing
    handlers are removed first, so repeated calls never stack handlers.
    """
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    numeric_level = level_map.get(level.upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    root_logger.addHandler(handler)
