"""Logger configuration and convenience helpers."""

from __future__ import annotations

import logging
import sys

_DEFAULT_LOGGER_NAME = "inspectix"
_DEFAULT_LOG_LEVEL = logging.INFO
_DEFAULT_FORMATTER = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
_DEFAULT_HANDLER = logging.StreamHandler(sys.stdout)
_DEFAULT_HANDLER.setFormatter(_DEFAULT_FORMATTER)


def _configure_logger(logger: logging.Logger, level: int) -> None:
    """
    Configure a logger with the given level and the shared stdout handler.

    The level is only applied when the logger has none of its own, and
    propagation to the root logger is disabled.

    Parameters
    ----------
    logger : logging.Logger
        The logger instance to configure.
    level : int
        The logging level to set if the logger's level is not already set.
    """
    if logger.level == logging.NOTSET:
        logger.setLevel(level)
    if not logger.handlers:
        logger.addHandler(_DEFAULT_HANDLER)
    logger.propagate = False


def get_logger(name: str | None = None, level: int = _DEFAULT_LOG_LEVEL) -> logging.Logger:
    """Return a logger under the package logger.

    Only the package logger carries a handler and a level; module loggers
    (``inspectix.*``) inherit both through propagation.
    """
    package_logger = logging.getLogger(_DEFAULT_LOGGER_NAME)
    _configure_logger(package_logger, level)
    if not name or name == _DEFAULT_LOGGER_NAME:
        return package_logger
    logger = logging.getLogger(name)
    if not name.startswith(f"{_DEFAULT_LOGGER_NAME}."):
        _configure_logger(logger, level)
    return logger


def set_level(level: int | str, logger_names: list[str] | None = None) -> None:
    """Set the log level for one or more logger names."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    names = logger_names or [_DEFAULT_LOGGER_NAME, "uvicorn"]
    for name in names:
        logging.getLogger(name).setLevel(level)
