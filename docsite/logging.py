"""Logging setup shared by the build pipeline, dev server and CLI."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "docsite"
_CONSOLE_FORMAT = "[docsite] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# uvicorn logs through its own hierarchy; keep it quiet unless verbose.
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a child of the ``docsite`` logger."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install console (and optional file) handlers on the ``docsite`` logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Drop handlers from earlier calls so repeated CLI runs don't duplicate lines.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    server_level = logging.INFO if verbose else logging.WARNING
    for name in _SERVER_LOGGERS:
        logging.getLogger(name).setLevel(server_level)

    return logger


__all__ = ["configure_logging", "get_logger"]
