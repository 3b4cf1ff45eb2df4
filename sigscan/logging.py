"""Logger hierarchy shared by the scanner, parser, exporter and CLI."""

from __future__ import annotations

import logging
from pathlib import Path

_ROOT = "sigscan"
_CONSOLE_FORMAT = "[sigscan] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """``get_logger("scanner")`` is ``sigscan.scanner``; no name gives the root."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, fmt: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send sigscan records to stderr, and also to ``log_file`` when given.

    ``verbose`` lowers the threshold to DEBUG so per-file diagnostics show up.
    Calling this again replaces the handlers installed by the previous call.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _attach(logger, logging.StreamHandler(), level, _CONSOLE_FORMAT)
    if log_file is not None:
        _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), level, _FILE_FORMAT)
    return logger


__all__ = ["configure_logging", "get_logger"]
