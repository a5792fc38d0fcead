#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Runtime configuration for remotify.

Values come from explicit arguments, from ``REMOTIFY_*`` environment
variables, or from the defaults below.
"""

import os
import threading
from dataclasses import dataclass, fields, replace
from typing import Any, List, Mapping, Optional

from .data.backends import CompressionAlgorithm
from .utils.logger import resolve_log_level

ENV_PREFIX = "REMOTIFY_"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")
_COMPRESSION_NAMES = (CompressionAlgorithm.ZLIB.value, CompressionAlgorithm.GZIP.value)


@dataclass(frozen=True)
class RemotifyConfig:
    """
    Settings shared by wrapper generation, dispatch and the gRPC transport.
    """

    wrapper_suffix: str = "_remote"
    max_parallel_sessions: int = 1
    connect_timeout: float = 5.0
    invoke_timeout: Optional[float] = None
    log_level: str = "INFO"
    pickle_protocol: int = 4
    compress: bool = False
    compression: str = "zlib"
    max_message_bytes: int = 50 * 1024 * 1024

    def __post_init__(self) -> None:
        errors = self.validate()
        if errors:
            raise ValueError("Invalid remotify configuration: " + "; ".join(errors))

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)."""
        errors: List[str] = []
        if not self.wrapper_suffix:
            errors.append("wrapper_suffix must not be empty")
        if self.max_parallel_sessions < 1:
            errors.append("max_parallel_sessions must be at least 1")
        if self.connect_timeout <= 0:
            errors.append("connect_timeout must be positive")
        if self.invoke_timeout is not None and self.invoke_timeout <= 0:
            errors.append("invoke_timeout must be positive when set")
        if self.max_message_bytes <= 0:
            errors.append("max_message_bytes must be positive")
        if self.compression not in _COMPRESSION_NAMES:
            errors.append(
                "compression must be one of {0}, got '{1}'".format(", ".join(_COMPRESSION_NAMES), self.compression)
            )
        try:
            resolve_log_level(self.log_level)
        except ValueError as exc:
            errors.append(str(exc))
        return errors

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "RemotifyConfig":
        """
        Build a configuration from ``REMOTIFY_*`` variables.

        Explicit keyword overrides win over the environment.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for config_field in fields(cls):
            raw = environ.get(ENV_PREFIX + config_field.name.upper())
            if raw is None or raw == "":
                continue
            values[config_field.name] = _coerce(config_field.name, config_field.default, raw)
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "RemotifyConfig":
        return replace(self, **overrides)


def _coerce(name: str, default: Any, raw: str) -> Any:
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError("{0}{1} must be a boolean, got '{2}'".format(ENV_PREFIX, name.upper(), raw))
    try:
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float) or name == "invoke_timeout":
            return float(raw)
    except ValueError as exc:
        raise ValueError(
            "{0}{1} has an invalid value '{2}'".format(ENV_PREFIX, name.upper(), raw)
        ) from exc
    return raw


_config_lock = threading.Lock()
_config: Optional[RemotifyConfig] = None


def get_config() -> RemotifyConfig:
    """
    Return the process default configuration, loading it from the environment once.
    """
    global _config
    with _config_lock:
        if _config is None:
            _config = RemotifyConfig.from_env()
        return _config


def set_config(config: Optional[RemotifyConfig]) -> None:
    """
    Replace the process default configuration (``None`` reloads from the environment).
    """
    global _config
    with _config_lock:
        _config = config


def create_config(**overrides: Any) -> RemotifyConfig:
    """
    Create a configuration from the environment plus explicit overrides.
    """
    return RemotifyConfig.from_env(**overrides)
