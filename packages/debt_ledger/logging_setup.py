"""Logging for ``debt_ledger``.

Modules obtain loggers with ``get_logger("debt_ledger.<module>")`` and emit
``event:name key=value ...`` messages; they never attach handlers. Output is
enabled by an entrypoint calling :func:`configure_logging` once, which hangs a
single stderr handler on the ``debt_ledger`` logger.

Environment:

- ``DEBT_LEDGER_LOG_LEVEL``: level name or number used when no explicit level
  is passed (default ``INFO``).
- ``DEBT_LEDGER_LOG_FORMAT``: format string used when no explicit ``fmt`` is
  passed.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "debt_ledger"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# Handler installed by configure_logging, if any.
_handler: logging.Handler | None = None


def _level_from_name(name: str) -> int | None:
    name = name.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = getattr(logging, name, None)
    return numeric if isinstance(numeric, int) else None


def _resolve_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    for candidate in (level, os.getenv("DEBT_LEDGER_LOG_LEVEL")):
        if candidate:
            parsed = _level_from_name(candidate)
            if parsed is not None:
                return parsed
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Send ``debt_ledger`` log records to ``stream`` (stderr by default).

    Only the first call has an effect; later calls are ignored until
    :func:`reset_logging` runs. An unknown level name falls back to the
    environment and then to ``INFO`` instead of raising.
    """

    global _handler
    if _handler is not None:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(
        logging.Formatter(fmt or os.getenv("DEBT_LEDGER_LOG_FORMAT") or _DEFAULT_FORMAT)
    )

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # one line per record, not another copy through the root logger
    logger.propagate = False
    _handler = handler


def reset_logging() -> None:
    """Undo :func:`configure_logging` (used between CLI invocations in tests)."""

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, keeping the package silent until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "reset_logging"]
