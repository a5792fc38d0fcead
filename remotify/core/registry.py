#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Function registry: the namespace wrappers are installed into and looked up from.
"""

import threading
from typing import Any, Callable, Dict, Iterator, List, Optional

from .signature import CallableReference
from .utils.exceptions import FunctionNotFoundError
from .utils.logger import ModernLogger


class FunctionRegistry(ModernLogger):
    """
    Name -> callable mapping.

    Original functions are registered here so generated wrappers can look their
    body up by name when called, and wrappers themselves are installed here.
    Binding an existing name replaces it (last registration wins).
    """

    def __init__(self, name: str = "registry", log_level: Optional[str] = None) -> None:
        ModernLogger.__init__(self, name=name, level=log_level)
        self._functions: Dict[str, Callable[..., Any]] = {}
        self._lock = threading.Lock()

    def register(self, func: Callable[..., Any], name: Optional[str] = None) -> str:
        """
        Bind ``func`` under ``name`` (default: ``func.__name__``) and return the name.
        """
        if not callable(func):
            raise TypeError("Only callables can be registered, got {0!r}".format(func))
        bound_name = name or getattr(func, "__name__", None)
        if not bound_name:
            raise ValueError("A name is required to register {0!r}".format(func))

        with self._lock:
            previous = self._functions.get(bound_name)
            self._functions[bound_name] = func

        if previous is not None and previous is not func:
            self.debug("Replaced binding for '%s'", bound_name)
        else:
            self.debug("Registered '%s'", bound_name)
        return bound_name

    def unregister(self, name: str) -> bool:
        """Remove a binding. Returns ``True`` when one existed."""
        with self._lock:
            removed = self._functions.pop(name, None)
        if removed is not None:
            self.debug("Unregistered '%s'", name)
        return removed is not None

    def lookup(self, name: str) -> Callable[..., Any]:
        with self._lock:
            func = self._functions.get(name)
        if func is None:
            raise FunctionNotFoundError(name)
        return func

    def get(self, name: str, default: Optional[Callable[..., Any]] = None) -> Optional[Callable[..., Any]]:
        with self._lock:
            return self._functions.get(name, default)

    def reference(self, name: str) -> CallableReference:
        """Resolve ``name`` to a ``CallableReference``."""
        return CallableReference(name=name, func=self.lookup(name))

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._functions)

    def clear(self) -> None:
        with self._lock:
            self._functions.clear()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._functions

    def __len__(self) -> int:
        with self._lock:
            return len(self._functions)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())


_global_registry_lock = threading.Lock()
_global_registry: Optional[FunctionRegistry] = None


def get_global_registry() -> FunctionRegistry:
    """
    Return the process default registry, creating it on first use.
    """
    global _global_registry
    with _global_registry_lock:
        if _global_registry is None:
            _global_registry = FunctionRegistry(name="registry.global")
        return _global_registry


def set_global_registry(registry: Optional[FunctionRegistry]) -> None:
    """
    Replace the process default registry (``None`` discards it).
    """
    global _global_registry
    with _global_registry_lock:
        _global_registry = registry
