"""Logging for ``finlens``: one handler on the ``finlens`` logger, set up by the CLI.

Library modules call ``get_logger("finlens.<module>")`` and log in a
``area:event key=value`` style, for example::

    ingest:file_parsed file=activity.csv kind=csv rows=42

They never attach handlers. Until :func:`configure_logging` runs, the
package logger carries a ``NullHandler`` so that embedding applications see
nothing unless they ask for it.

The level comes from :attr:`finlens.config.Settings.log_level`
(``FINLENS_LOG_LEVEL``); this module does not read the environment itself.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

_PKG_LOGGER_NAME = "finlens"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    """``int`` passes through; names and numeric strings are resolved; else INFO."""

    if isinstance(level, int):
        return level
    name = (level or "").strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelNamesMapping().get(name)
    return numeric if numeric is not None else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Attach the package's single ``StreamHandler``. Later calls are no-ops.

    Parameters
    ----------
    level:
        ``int`` or level name such as ``"debug"``. Unknown names and ``None``
        mean ``INFO``.
    fmt:
        Format string; defaults to ``"%(asctime)s %(name)s %(levelname)s %(message)s"``.
    stream:
        Handler output, ``sys.stderr`` by default so reports on stdout stay clean.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
