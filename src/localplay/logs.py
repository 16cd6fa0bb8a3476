"""Logging setup for the LocalPlay CLI."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from localplay.config.models import LoggingSettings

LOG_FILENAME = "localplay.log"
_HANDLER_MARK = "_localplay_handler"


def configure_logging(
    settings: LoggingSettings,
    log_dir: Optional[Path] = None,
    *,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Attach console and rotating file handlers to the ``localplay`` logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        settings: Level and rotation settings.
        log_dir: Directory for ``localplay.log``; no file handler when omitted.
        console: Rich console used for terminal output (stderr by default).

    Returns:
        logging.Logger: The configured package logger.
    """
    logger = logging.getLogger("localplay")
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    setattr(console_handler, _HANDLER_MARK, True)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / LOG_FILENAME,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        setattr(file_handler, _HANDLER_MARK, True)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


__all__ = ["configure_logging", "LOG_FILENAME"]
