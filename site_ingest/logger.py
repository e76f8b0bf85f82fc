# === FILE: site_ingest/logger.py ===
"""Logging setup for **SiteIngest**.

All modules log through one named logger::

    from site_ingest.logger import logger
    logger.info("Sitemap %s: %d URLs", url, count)

Console output goes to *stderr*, so commands that print JSON reports keep
stdout machine-readable. An optional rotating file handler mirrors the
console. The CLI calls :func:`init_logging` once per invocation.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, List, Optional, TextIO, Union

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "SiteIngest"

_MAX_LOG_BYTES: Final[int] = 5 * 1024 * 1024
_LOG_BACKUPS: Final[int] = 3

# Chatty libraries used by the crawler; kept at WARNING unless asked otherwise.
_LIBRARY_LOGGERS: Final[tuple] = ("aiohttp", "asyncio")

_LevelT = Union[int, str]


def _handlers(fmt: str, log_file: Optional[Union[str, Path]], stream: TextIO) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt)
    console = logging.StreamHandler(stream)
    handlers: List[logging.Handler] = [console]
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=str(log_file),
                maxBytes=_MAX_LOG_BYTES,
                backupCount=_LOG_BACKUPS,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = DEFAULT_FORMAT,
    stream: Optional[TextIO] = None,
    verbose_libraries: bool = False,
) -> logging.Logger:
    """Install fresh handlers on the SiteIngest logger and return it.

    Parameters
    ----------
    level
        Numeric or textual level (``"DEBUG"``, ``logging.INFO``...).
    log_file
        Rotating logfile (5 MiB x 3); *None* disables file output.
    log_format
        :class:`logging.Formatter` format string.
    stream
        Console stream, ``sys.stderr`` by default.
    verbose_libraries
        Let aiohttp/asyncio records through at *level* instead of WARNING.
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(level)
    for old in list(lg.handlers):
        lg.removeHandler(old)
        old.close()
    for handler in _handlers(log_format, log_file, stream if stream is not None else sys.stderr):
        lg.addHandler(handler)
    lg.propagate = False

    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(level if verbose_libraries else logging.WARNING)
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = DEFAULT_FORMAT,
    verbose_libraries: bool = False,
) -> logging.Logger:
    """Entry point for the CLI; library users may call :func:`configure` directly."""
    return configure(
        level=level, log_file=log_file, log_format=log_format, verbose_libraries=verbose_libraries
    )


logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "DEFAULT_FORMAT", "LOGGER_NAME"]
