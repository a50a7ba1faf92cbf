"""Logging helpers for configuring per-run debug outputs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

__all__ = [
    "configure_debug_file_logger",
    "close_debug_logger",
]

_HANDLER_MARKER = "_vmtrace_debug_log"


def configure_debug_file_logger(
    name: str,
    path: Path,
    *,
    level: int = logging.DEBUG,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Logger:
    """Return a logger writing debug traces to ``path``.

    Any previously configured debug handlers on ``name`` are removed so repeated
    invocations replace earlier traces instead of appending to them.  While the
    handler is installed records stop propagating to the console handlers.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    close_debug_logger(logger)
    logger.setLevel(level)
    logger.propagate = False

    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    setattr(handler, _HANDLER_MARKER, True)
    if formatter is None:
        formatter = logging.Formatter("%(levelname)s %(name)s: %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def close_debug_logger(logger: logging.Logger) -> None:
    """Tear down handlers installed by :func:`configure_debug_file_logger`."""

    removed = False
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()
            removed = True
    if removed:
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
