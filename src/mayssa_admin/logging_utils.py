"""Logging setup shared by the API, the CLI and the ledgers."""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_warned: set[str] = set()


def configure_logging(level: str = "info") -> None:
    """Configure the root logger with a single console handler."""

    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(_FORMAT))

    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def warn_once(logger: logging.Logger, key: str, message: str, *args: object, **kwargs) -> None:
    """Emit *message* at WARNING level only the first time *key* is seen."""

    if key in _warned:
        return
    _warned.add(key)
    logger.warning(message, *args, **kwargs)


def forget_warning(key: str) -> None:
    """Allow the warning registered under *key* to be emitted again."""

    _warned.discard(key)
