"""Shared logging setup for the library → playlist flow.

Provides a single session log (latest.log) and a daily rotating archive
(library_to_playlist.log). All modules write to the same files, distinguished
by logger name in the format. Set LIBRARY_TO_PLAYLIST_LOG_DIR to move them.
"""

import logging
import os
from logging.handlers import TimedRotatingFileHandler

DIR = os.path.dirname(os.path.abspath(__file__))
LOG_DIR = os.environ.get("LIBRARY_TO_PLAYLIST_LOG_DIR") or os.path.join(DIR, "logs")

LATEST_LOG = os.path.join(LOG_DIR, "latest.log")
DAILY_LOG = os.path.join(LOG_DIR, "library_to_playlist.log")

_FILE_FMT = logging.Formatter(
    "%(asctime)s [%(name)s] %(levelname)-5s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
_CONSOLE_FMT = logging.Formatter("%(message)s")

_console_handler = None
_latest_handler = None
_daily_handler = None


def _get_handlers():
    """Lazily create the shared handlers (one instance each)."""
    global _console_handler, _latest_handler, _daily_handler

    if _console_handler is None:
        _console_handler = logging.StreamHandler()
        _console_handler.setLevel(logging.INFO)
        _console_handler.setFormatter(_CONSOLE_FMT)

    if _latest_handler is None:
        os.makedirs(LOG_DIR, exist_ok=True)
        _latest_handler = logging.FileHandler(LATEST_LOG, mode="a", encoding="utf-8", delay=True)
        _latest_handler.setLevel(logging.DEBUG)
        _latest_handler.setFormatter(_FILE_FMT)

    if _daily_handler is None:
        _daily_handler = TimedRotatingFileHandler(
            DAILY_LOG, when="midnight", backupCount=0, encoding="utf-8", delay=True,
        )
        _daily_handler.setLevel(logging.DEBUG)
        _daily_handler.setFormatter(_FILE_FMT)
        _daily_handler.namer = lambda name: name.replace(".log.", ".") + ".log"

    return _console_handler, _latest_handler, _daily_handler


def get_logger(name):
    """Return a named logger with console + latest.log + daily archive handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        return logger

    for handler in _get_handlers():
        logger.addHandler(handler)

    return logger


def set_verbose(verbose):
    """Show DEBUG records on the console too."""
    console, _, _ = _get_handlers()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)


def reset_latest():
    """Truncate latest.log at session start."""
    os.makedirs(LOG_DIR, exist_ok=True)
    open(LATEST_LOG, "w").close()
