#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Decorator helpers for generating remoting wrappers.
"""

from typing import Any, Callable, Optional, TypeVar, Union, cast

from .core.config import RemotifyConfig
from .core.generator import generate_remote_wrapper
from .core.registry import FunctionRegistry, get_global_registry
from .core.transport.base import SessionTransport

T = TypeVar("T", bound=Callable[..., Any])


def register(
    *,
    name: Optional[str] = None,
    registry: Optional[FunctionRegistry] = None,
    transport: Optional[SessionTransport] = None,
    config: Optional[RemotifyConfig] = None,
) -> Callable[[T], T]:
    """
    Register a function and install its remoting wrapper.

    The function itself is returned unchanged; the wrapper is installed in the
    registry and also available as ``func.remote``.
    """

    def decorator(func: T) -> T:
        target_registry = registry if registry is not None else get_global_registry()
        wrapper = generate_remote_wrapper(
            func,
            name=name,
            registry=target_registry,
            transport=transport,
            config=config,
        )
        func.remote = wrapper  # type: ignore[attr-defined]
        return func

    return decorator


def remotable(
    func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    registry: Optional[FunctionRegistry] = None,
    transport: Optional[SessionTransport] = None,
    config: Optional[RemotifyConfig] = None,
) -> Union[Callable[[T], T], T]:
    """
    Public decorator entry supporting both:
    - @remotable
    - @remotable(...)
    """
    decorator = register(name=name, registry=registry, transport=transport, config=config)

    if func is not None and callable(func):
        return decorator(cast(T, func))
    return decorator
