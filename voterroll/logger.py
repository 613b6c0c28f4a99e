"""
Logging setup for the digitizer.

Everything logs under the ``voterroll`` logger tree. ``setup_logger``
attaches the handlers once, to the package logger only:

- console: Rich on a terminal, a plain line format otherwise; INFO, or
  DEBUG when DEBUG=1
- file: DEBUG, one file per run under LOG_DIR (skipped with LOG_TO_FILE=0)

Strategies and the coordinator ask for a child with ``get_logger(name)``.
Page tasks log from worker threads, so the thread name goes into the
file format.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from .config import get_config

LOGGER_NAME = "voterroll"

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"


def _console_handler(level: int) -> logging.Handler:
    if sys.stdout.isatty():
        handler: logging.Handler = RichHandler(
            rich_tracebacks=True, show_time=True, show_level=True, show_path=False
        )
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    handler.setLevel(level)
    return handler


def _file_handler(log_dir: Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"voterroll_{datetime.now():%Y%m%d_%H%M%S}.log"
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logger(
    debug: Optional[bool] = None,
    log_dir: Optional[Path] = None,
    log_to_file: Optional[bool] = None
) -> logging.Logger:
    """
    Configure the package logger. Later calls return it unchanged.

    Unset arguments come from the config (DEBUG, LOG_DIR, LOG_TO_FILE).
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    config = get_config()
    debug = config.debug if debug is None else debug
    log_dir = config.logs_dir if log_dir is None else log_dir
    log_to_file = config.log_to_file if log_to_file is None else log_to_file

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(_console_handler(logging.DEBUG if debug else logging.INFO))

    if log_to_file:
        handler = _file_handler(Path(log_dir))
        logger.addHandler(handler)
        logger.debug(f"Log file: {handler.baseFilename}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the package logger, configuring the package on first use."""
    setup_logger()
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
