"""Logging helpers for fdpde.

All package loggers live under the ``fdpde`` namespace. The library installs
only a :class:`logging.NullHandler`; applications opt into output with
:func:`configure_logging`.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

_ROOT = "fdpde"
_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

logging.getLogger(_ROOT).addHandler(logging.NullHandler())


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the logger for ``name`` (typically ``__name__``) under ``fdpde``.

    Example
    -------
    >>> from fdpde.logging import get_logger
    >>> logger = get_logger(__name__)
    """
    if not name:
        return logging.getLogger(_ROOT)
    if name == _ROOT or name.startswith(_ROOT + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT}.{name}")


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown logging level {level!r}")
        return resolved
    return int(level)


def set_log_level(level: int | str) -> None:
    """Set the level of the ``fdpde`` root logger."""
    logging.getLogger(_ROOT).setLevel(_coerce_level(level))


def configure_logging(
    level: int | str = logging.WARNING,
    *,
    format_string: str | None = None,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Attach a single stream handler to the ``fdpde`` root logger.

    Calling it again replaces the handler installed by a previous call.
    Returns the installed handler.
    """
    root = logging.getLogger(_ROOT)
    for handler in list(root.handlers):
        if getattr(handler, "_fdpde_owned", False):
            root.removeHandler(handler)

    lvl = _coerce_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(lvl)
    handler.setFormatter(logging.Formatter(format_string or _FORMAT))
    handler._fdpde_owned = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel(lvl)
    return handler
