#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Utility exports for remotify core.
"""

from .logger import ModernLogger, resolve_log_level
from .exceptions import *  # noqa: F401,F403
from .exceptions import ExceptionTranslator, RemotifyError

__all__ = [
    "ModernLogger",
    "resolve_log_level",
    "ExceptionTranslator",
    "RemotifyError",
]
