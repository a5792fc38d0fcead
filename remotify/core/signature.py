#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Signature extraction for callables that are about to be wrapped.

The extractor reads a callable's declared parameters without calling it.
Each parameter keeps its literal source declaration (``count: int = 3``) so it
can be spliced verbatim into a generated signature.
"""

import ast
import inspect
import textwrap
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .utils.exceptions import NotIntrospectableError


@dataclass(frozen=True)
class ParameterDescriptor:
    """
    One declared parameter: its name and its source-form declaration.

    ``default`` is the live default object of the original parameter. Generated
    wrappers bind it directly instead of re-evaluating the default text.
    """

    name: str
    declaration: str
    parameter_set: Optional[str] = None
    default: Any = field(default=inspect.Parameter.empty, repr=False, compare=False)

    @property
    def has_default(self) -> bool:
        """True when the live default value of the original parameter is known."""
        return self.default is not inspect.Parameter.empty


@dataclass(frozen=True)
class CallableReference:
    """
    Handle to a named callable.

    ``func`` is the body; ``name`` is the name it is registered under, which is
    what generated wrappers use to look the body up again at call time.
    """

    name: str
    func: Callable[..., Any] = field(repr=False, compare=False)

    @classmethod
    def from_callable(cls, func: Callable[..., Any], name: Optional[str] = None) -> "CallableReference":
        if not callable(func):
            raise NotIntrospectableError(
                repr(func), "Object {0!r} is not callable".format(func)
            )
        return cls(name=name or getattr(func, "__name__", repr(func)), func=func)

    @property
    def parameters(self) -> List[ParameterDescriptor]:
        return extract_signature(self).parameters

    @property
    def body(self) -> Callable[..., Any]:
        return self.func


@dataclass(frozen=True)
class ExtractedSignature:
    """Result of signature extraction: ordered parameters plus the body."""

    name: str
    parameters: List[ParameterDescriptor]
    body: Callable[..., Any] = field(repr=False, compare=False)

    @property
    def parameter_names(self) -> Tuple[str, ...]:
        return tuple(parameter.name for parameter in self.parameters)


_VARIADIC_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def extract_signature(reference: CallableReference) -> ExtractedSignature:
    """
    Extract the ordered parameter list of ``reference``.

    Raises:
        NotIntrospectableError: the callable has no Python-level code (builtins,
            C extensions, classes), no readable signature, or declares
            variadic parameters that cannot be forwarded positionally.
    """
    func = reference.func
    code_owner = _code_owner(func)
    if code_owner is None:
        raise NotIntrospectableError(
            reference.name,
            "Callable '{0}' is not a Python function and has no introspectable "
            "parameter list".format(reference.name),
        )

    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as exc:
        raise NotIntrospectableError(reference.name, cause=exc) from exc

    declarations = _source_declarations(code_owner) or {}
    parameters: List[ParameterDescriptor] = []
    for parameter in signature.parameters.values():
        if parameter.kind in _VARIADIC_KINDS:
            raise NotIntrospectableError(
                reference.name,
                "Callable '{0}' declares variadic parameter '{1}', which cannot be "
                "forwarded".format(reference.name, parameter.name),
            )
        declaration = declarations.get(parameter.name) or _render_declaration(parameter)
        parameters.append(
            ParameterDescriptor(name=parameter.name, declaration=declaration, default=parameter.default)
        )

    return ExtractedSignature(name=reference.name, parameters=parameters, body=func)


def _code_owner(func: Any) -> Optional[Any]:
    """Return the plain Python function behind ``func``, if there is one."""
    if inspect.ismethod(func):
        func = func.__func__
    func = inspect.unwrap(func)
    if inspect.isfunction(func):
        return func
    return None


def _source_declarations(func: Any) -> Optional[Dict[str, str]]:
    """
    Map parameter names to their literal declaration text from source.

    Returns ``None`` when the source is unavailable (interactive sessions,
    lambdas, generated code); callers then render from ``inspect``.
    """
    try:
        source = textwrap.dedent(inspect.getsource(func))
        tree = ast.parse(source)
    except (OSError, TypeError, SyntaxError):
        return None

    node = _find_function_node(tree, func.__name__)
    if node is None:
        return None

    arguments = node.args
    positional = list(arguments.posonlyargs) + list(arguments.args)
    padding: List[Optional[ast.expr]] = [None] * (len(positional) - len(arguments.defaults))
    pairs = list(zip(positional, padding + list(arguments.defaults)))
    pairs += list(zip(arguments.kwonlyargs, arguments.kw_defaults))

    declarations: Dict[str, str] = {}
    for argument, default in pairs:
        text = argument.arg
        if argument.annotation is not None:
            annotation = ast.get_source_segment(source, argument.annotation)
            if annotation is None:
                return None
            text += ": " + annotation
        if default is not None:
            default_text = ast.get_source_segment(source, default)
            if default_text is None:
                return None
            text += (" = " if argument.annotation is not None else "=") + default_text
        declarations[argument.arg] = text
    return declarations


def _find_function_node(tree: ast.AST, name: str) -> Optional[ast.AST]:
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name == name:
            return node
    return None


def _render_declaration(parameter: inspect.Parameter) -> str:
    return str(parameter.replace(kind=inspect.Parameter.KEYWORD_ONLY))
