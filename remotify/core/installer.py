#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Dynamic installation of generated wrapper definitions.

The definition text is compiled with postponed annotation evaluation, so
annotation text copied from the original function is stored, never
evaluated. Live default values travel in ``definition.defaults`` and are bound
as they are; default text without a live value is evaluated against a copy
of the globals supplied by the caller (normally the original function's
module globals).
"""

import __future__
from typing import Any, Callable, Dict, MutableMapping, Optional

from .registry import FunctionRegistry
from .template import DEFAULTS_NAME, RUNTIME_NAME, WRAPPER_FUNCTION_NAME, GeneratedDefinition
from .utils.exceptions import CompilationError
from .utils.logger import ModernLogger

_logger = ModernLogger(name="installer")

_COMPILE_FLAGS = __future__.annotations.compiler_flag


def derive_wrapper_name(original_name: str, suffix: str) -> str:
    return original_name + suffix


def compile_definition(
    definition: GeneratedDefinition,
    runtime: Any,
    globalns: Optional[Dict[str, Any]] = None,
) -> Callable[..., Any]:
    """
    Compile and evaluate ``definition`` and return the wrapper function.

    Raises:
        CompilationError: the text is not valid Python, or evaluating the
            ``def`` statement failed (for example a default expression
            referring to an unknown name).
    """
    filename = "<remotify wrapper for {0}>".format(definition.original_name)
    try:
        code = compile(definition.source, filename, "exec", flags=_COMPILE_FLAGS, dont_inherit=True)
    except SyntaxError as exc:
        raise CompilationError(
            definition.source,
            lineno=exc.lineno,
            offset=exc.offset,
            cause=exc,
        ) from exc

    environment: Dict[str, Any] = dict(globalns or {})
    environment[RUNTIME_NAME] = runtime
    environment[DEFAULTS_NAME] = dict(definition.defaults)
    try:
        exec(code, environment)
    except Exception as exc:
        raise CompilationError(definition.source, cause=exc) from exc

    wrapper = environment.get(WRAPPER_FUNCTION_NAME)
    if not callable(wrapper):
        raise CompilationError(
            definition.source,
            cause=NameError("template did not define {0}".format(WRAPPER_FUNCTION_NAME)),
        )
    return wrapper


def install_definition(
    definition: GeneratedDefinition,
    name: str,
    *,
    registry: FunctionRegistry,
    runtime: Any,
    globalns: Optional[Dict[str, Any]] = None,
    namespace: Optional[MutableMapping[str, Any]] = None,
    module: Optional[str] = None,
) -> Callable[..., Any]:
    """
    Compile ``definition`` and bind the result under ``name``.

    The wrapper is registered in ``registry`` and, when given, also assigned
    into ``namespace`` (for example a module's ``globals()``). An existing
    binding of the same name is replaced. Nothing is bound if compilation
    fails.
    """
    wrapper = compile_definition(definition, runtime, globalns)

    wrapper.__name__ = name
    wrapper.__qualname__ = name
    wrapper.__doc__ = "Remoting wrapper for {0}; runs it on each target session.".format(
        definition.original_name
    )
    if module is not None:
        wrapper.__module__ = module
    wrapper.__remotify_definition__ = definition

    replaced = name in registry
    registry.register(wrapper, name)
    if namespace is not None:
        namespace[name] = wrapper

    if replaced:
        _logger.info("Reinstalled wrapper '%s' for '%s'", name, definition.original_name)
    else:
        _logger.info("Installed wrapper '%s' for '%s'", name, definition.original_name)
    return wrapper
