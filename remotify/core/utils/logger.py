#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Logging mixin shared by remotify components.
"""

import logging
from typing import Any, Optional, Union

ROOT_LOGGER_NAME = "remotify"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def resolve_log_level(level: Union[str, int, None]) -> Optional[int]:
    """
    Translate a level name or number into a ``logging`` level.
    """
    if level is None:
        return None
    if isinstance(level, int):
        return level
    normalized = level.strip().upper()
    if normalized not in _LEVELS:
        raise ValueError("Unknown log level '{0}'".format(level))
    return _LEVELS[normalized]


class ModernLogger:
    """
    Mixin that gives a component its own logger under the ``remotify`` hierarchy.

    Subclasses call ``ModernLogger.__init__(self, name=..., level=...)`` and then
    log through ``self.debug``/``self.info``/``self.warning``/``self.error``.
    """

    def __init__(self, name: str = "remotify", level: Union[str, int, None] = None) -> None:
        if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
            logger_name = name
        else:
            logger_name = "{0}.{1}".format(ROOT_LOGGER_NAME, name)
        self.logger = logging.getLogger(logger_name)
        resolved = resolve_log_level(level)
        if resolved is not None:
            self.logger.setLevel(resolved)

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(message, *args, **kwargs)

    def critical(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.critical(message, *args, **kwargs)

    def set_level(self, level: Union[str, int]) -> None:
        """Set logging level."""
        self.logger.setLevel(resolve_log_level(level))
