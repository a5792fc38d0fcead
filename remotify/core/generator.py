#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Remoting wrapper generation.

``generate_remote_wrapper`` runs the three generation steps once per wrapped
callable:

1. extract the callable's parameters (``signature.extract_signature``),
2. expand the wrapper template (``template.expand_template``),
3. compile and bind the result (``installer.install_definition``).

The installed wrapper calls back into a ``WrapperRuntime`` on every
invocation to resolve sessions, look the original body up by name,
dispatch, and tear down the sessions it opened.
"""

import inspect
from typing import Any, Callable, Dict, MutableMapping, Optional, Sequence, Union

from .config import RemotifyConfig, get_config
from .dispatch import dispatch
from .installer import derive_wrapper_name, install_definition
from .registry import FunctionRegistry, get_global_registry
from .sessions import Credential, RemoteSession, RemotingOptions, close_sessions, resolve_sessions
from .signature import CallableReference, extract_signature
from .template import DEFAULT_TEMPLATE, REMOTING_PARAMETERS, RemotingParameterSet, WrapperTemplate, expand_template
from .transport.base import SessionTransport
from .utils.logger import ModernLogger


class WrapperRuntime(ModernLogger):
    """
    Call-time services used by generated wrappers.

    ``transport`` and ``config`` may be left unset; the process defaults are
    then looked up on each call, so a wrapper can be generated before a
    transport is configured.
    """

    def __init__(
        self,
        registry: FunctionRegistry,
        transport: Optional[SessionTransport] = None,
        config: Optional[RemotifyConfig] = None,
    ) -> None:
        ModernLogger.__init__(self, name="runtime")
        self.registry = registry
        self._transport = transport
        self._config = config

    @property
    def config(self) -> RemotifyConfig:
        return self._config or get_config()

    @property
    def transport(self) -> Optional[SessionTransport]:
        return self._transport

    def options(
        self,
        targets: Optional[Sequence[str]] = None,
        credential: Optional[Credential] = None,
        sessions: Optional[Sequence[RemoteSession]] = None,
    ) -> RemotingOptions:
        return RemotingOptions(targets=targets, credential=credential, sessions=sessions)

    def lookup(self, name: str) -> Callable[..., Any]:
        return self.registry.lookup(name)

    def resolve(self, options: RemotingOptions) -> list:
        return resolve_sessions(options, self._transport)

    def dispatch(self, sessions: Sequence[RemoteSession], body: Callable[..., Any], arguments: Sequence[Any]) -> list:
        return dispatch(
            sessions,
            body,
            arguments,
            max_parallel=self.config.max_parallel_sessions,
        )

    def teardown(self, sessions: Sequence[RemoteSession], options: RemotingOptions) -> int:
        return close_sessions(sessions, options)


def _function_globals(func: Callable[..., Any]) -> Dict[str, Any]:
    if inspect.ismethod(func):
        func = func.__func__
    return getattr(inspect.unwrap(func), "__globals__", {})


def generate_remote_wrapper(
    target: Union[str, Callable[..., Any]],
    *,
    name: Optional[str] = None,
    registry: Optional[FunctionRegistry] = None,
    transport: Optional[SessionTransport] = None,
    config: Optional[RemotifyConfig] = None,
    template: WrapperTemplate = DEFAULT_TEMPLATE,
    remoting: RemotingParameterSet = REMOTING_PARAMETERS,
    namespace: Optional[MutableMapping[str, Any]] = None,
) -> Callable[..., Any]:
    """
    Generate a remoting wrapper for ``target`` and install it.

    Args:
        target: The function to wrap, or the name it is registered under.
        name: Wrapper name. Defaults to the original name plus
            ``config.wrapper_suffix``.
        registry: Registry holding the original and receiving the wrapper
            (default: the process registry).
        transport: Transport used to open sessions from ``targets``
            (default: the process default transport, resolved per call).
        config: Configuration (default: the process configuration).
        template: Wrapper source template.
        remoting: The remoting parameters prepended to the signature.
        namespace: Optional extra mapping (e.g. ``globals()``) to bind into.

    Returns:
        The installed wrapper. It takes ``targets``/``credential`` or
        ``sessions`` plus the original parameters, all as keywords, and
        returns one result per session, in session order.

    Raises:
        FunctionNotFoundError, NotIntrospectableError, TemplateMismatchError,
        DuplicateParameterNameError, CompilationError. No binding is made
        when any of them is raised.
    """
    registry = registry if registry is not None else get_global_registry()
    effective_config = config or get_config()

    if isinstance(target, str):
        reference = registry.reference(target)
    else:
        reference = CallableReference.from_callable(target)

    wrapper_name = name or derive_wrapper_name(reference.name, effective_config.wrapper_suffix)
    if wrapper_name == reference.name:
        raise ValueError(
            "Wrapper name '{0}' would replace the function it wraps".format(wrapper_name)
        )

    extracted = extract_signature(reference)
    definition = expand_template(template, extracted.parameters, reference, remoting)

    runtime = WrapperRuntime(registry, transport=transport, config=config)
    wrapper = install_definition(
        definition,
        wrapper_name,
        registry=registry,
        runtime=runtime,
        globalns=_function_globals(reference.func),
        namespace=namespace,
        module=getattr(reference.func, "__module__", None),
    )

    if registry.get(reference.name) is not reference.func:
        registry.register(reference.func, reference.name)
    return wrapper
