"""Logging configuration using loguru.

Skipped resource files and linkage fallbacks are logged at ``WARNING`` next
to their ``LoadReport`` entry.  Load and sync summaries go to ``INFO``, and
per-file decisions such as replaced ids go to ``DEBUG``.

Stdlib logging is intercepted so that library and host application records
flow through the same sinks.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from loguru import logger

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


class _InterceptHandler(logging.Handler):
    """Bridge stdlib logging records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk the call stack so loguru reports the real call-site
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, serialize: bool = False, log_file: Path | None = None) -> None:
    """Configure loguru as the sole logging sink.

    The CLI calls this once before any command runs.  ``serialize=True``
    writes one JSON object per line to stderr.  ``log_file`` adds a rotating
    file sink that always records ``DEBUG``, so a user can attach a full trace
    of a failed save or load without rerunning it.
    """
    level = level.upper()

    logger.remove()
    if serialize:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, level="DEBUG", rotation="10 MB", retention=5, encoding="utf-8")

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    logger.debug("Logging initialised (level={}, file={})", level, log_file)
