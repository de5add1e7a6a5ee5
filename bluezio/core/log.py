"""
Core logging functionality for bluezio.

Every log type gets its own file under ``config.LOG_DIR``; all of them hang off
the ``bluezio`` package logger so applications can also attach their own
handlers in the usual way.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from . import config

# Re-export log type constants for external modules
LOG__GENERAL = config.LOG__GENERAL
LOG__DEBUG = config.LOG__DEBUG

_LOG_PATHS: Dict[str, Path] = {
    LOG__GENERAL: config.LOG_DIR / "general.log",
    LOG__DEBUG: config.LOG_DIR / "debug.log",
}

# Raw message only, the log type is encoded in the file name
_formatter = logging.Formatter("%(message)s")

_handlers: Dict[str, logging.Handler] = {}
for log_type, path in _LOG_PATHS.items():
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError:
        # Read-only home directories still get a working logger.
        handler = logging.NullHandler()
    handler.setFormatter(_formatter)
    _handlers[log_type] = handler

# Root logger for bluezio. Records below INFO go to the debug log, the rest
# to the general log at the configured level.
_logger = logging.getLogger("bluezio")
_logger.setLevel(logging.DEBUG)
_handlers[LOG__GENERAL].setLevel(
    max(logging.INFO, getattr(logging, config.LOG_LEVEL, logging.INFO))
)
_handlers[LOG__DEBUG].addFilter(lambda record: record.levelno < logging.INFO)
_logger.addHandler(_handlers[LOG__GENERAL])
_logger.addHandler(_handlers[LOG__DEBUG])

# Clean up temporary variables
del log_type, path, handler


def _emit(line: str, log_type: str) -> None:
    """Internal helper to emit log records without altering the original message."""
    record = logging.LogRecord(
        name=f"bluezio.{log_type.lower()}",
        level=logging.DEBUG if log_type == LOG__DEBUG else logging.INFO,
        pathname=__file__,
        lineno=0,
        msg=line.rstrip("\n"),
        args=(),
        exc_info=None,
    )
    _handlers.get(log_type, _handlers[LOG__GENERAL]).handle(record)


def logging__debug_log(msg: str) -> None:
    """Write to debug log."""
    _emit(msg, LOG__DEBUG)


def logging__general_log(msg: str) -> None:
    """Write to general log."""
    _emit(msg, LOG__GENERAL)


_log_func_map = {
    LOG__GENERAL: logging__general_log,
    LOG__DEBUG: logging__debug_log,
}


def logging__log_event(log_type: str, string_to_log: str) -> None:
    """Log an event to the specified log type."""
    _log_func_map.get(log_type, logging__general_log)(string_to_log)


def print_and_log(output_string: str, log_type: str = LOG__GENERAL) -> None:
    """Print to stdout and log to the specified log type."""
    if log_type != LOG__DEBUG:
        print(output_string)
    logging__log_event(log_type, output_string)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger with the specified name.

    Names are taken relative to the ``bluezio`` package logger, so
    ``get_logger(__name__)`` from ``bluezio.dbuslayer.events`` yields
    ``bluezio.dbuslayer.events`` rather than ``bluezio.bluezio...``.
    """
    if not name:
        return _logger
    if name == "bluezio" or name.startswith("bluezio."):
        return logging.getLogger(name)
    return _logger.getChild(name)
