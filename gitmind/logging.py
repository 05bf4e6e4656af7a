"""Logging setup shared by the gitmind library and its HTTP service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

_LOGGER_NAME = "gitmind"

CONSOLE_FORMAT = "[gitmind] %(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# uvicorn loggers that share gitmind's handlers in service mode.
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the gitmind hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None, server: bool = False
) -> logging.Logger:
    """Send gitmind records to stderr and, optionally, to ``log_file``.

    With ``server`` the uvicorn loggers are routed through the same handlers.
    Access lines are only emitted when ``verbose`` is set.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers = _build_handlers(level, log_file)

    logger = logging.getLogger(_LOGGER_NAME)
    _install(logger, handlers, level)

    if server:
        for name in SERVER_LOGGERS:
            server_level = level if verbose or name != "uvicorn.access" else logging.WARNING
            _install(logging.getLogger(name), handlers, server_level)

    return logger


def _build_handlers(level: int, log_file: Path | None) -> List[logging.Handler]:
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handlers: List[logging.Handler] = [stream_handler]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)
    return handlers


def _install(logger: logging.Logger, handlers: List[logging.Handler], level: int) -> None:
    # Drop handlers from an earlier call.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


__all__ = ["CONSOLE_FORMAT", "FILE_FORMAT", "SERVER_LOGGERS", "configure_logging", "get_logger"]
