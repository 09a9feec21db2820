"""Logging setup for mapty sessions.

Each CLI invocation is one session and gets its own log file under
``<data>/logs``; the console shows only what the user needs to see.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mapty.config import Config

logger = logging.getLogger("mapty")

LOG_DIRNAME = "logs"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# HTTP traffic of the IP geolocation lookup goes to the session file as well
_CAPTURED_LOGGERS = ("urllib3",)


def _drop_handlers() -> None:
    """Detach and close the handlers of a previous session in this process."""
    for handler in list(logger.handlers):
        for name in _CAPTURED_LOGGERS:
            logging.getLogger(name).removeHandler(handler)
        logger.removeHandler(handler)
        handler.close()


def session_log_path(log_dir: Path, started: datetime | None = None) -> Path:
    """Path of the log file for a session started at ``started``."""
    started = started or datetime.now()
    return log_dir / f"mapty-{started:%Y%m%dT%H%M%S}.log"


def setup_logging(
    config: Config | None = None,
    log_dir: Path | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    quiet: bool = False,
) -> logging.Logger:
    """Attach console and session-file handlers to the ``mapty`` logger.

    Args:
        config: Application config; the log directory defaults to
            ``<data directory>/logs``.
        log_dir: Explicit log directory, overriding the config.
        console_level: Console level (WARNING is enforced when quiet).
        file_level: Level for the session log file.
        quiet: Limit the console to warnings and errors.

    Returns:
        The ``mapty`` logger.
    """
    _drop_handlers()
    logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.WARNING if quiet else console_level)
    console.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console)

    if log_dir is None:
        log_dir = (config.data.directory if config is not None else Path(".")) / LOG_DIRNAME
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = session_log_path(log_dir)

    session_file = logging.FileHandler(log_file, encoding="utf-8")
    session_file.setLevel(file_level)
    session_file.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
    logger.addHandler(session_file)

    for name in _CAPTURED_LOGGERS:
        captured = logging.getLogger(name)
        captured.setLevel(logging.DEBUG)
        captured.addHandler(session_file)

    logger.debug("Session log: %s", log_file)
    return logger
