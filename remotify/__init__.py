#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
remotify public API with lazy imports.

This avoids importing grpc unless the gRPC transport is actually requested.
"""

from importlib import import_module
from typing import Any, Dict, Tuple

from ._version import __version__

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "remotable": ("remotify.decorators", "remotable"),
    "generate_remote_wrapper": ("remotify.core.generator", "generate_remote_wrapper"),
    "FunctionRegistry": ("remotify.core.registry", "FunctionRegistry"),
    "get_global_registry": ("remotify.core.registry", "get_global_registry"),
    "Credential": ("remotify.core.sessions", "Credential"),
    "RemoteSession": ("remotify.core.sessions", "RemoteSession"),
    "RemotingOptions": ("remotify.core.sessions", "RemotingOptions"),
    "open_sessions": ("remotify.core.sessions", "open_sessions"),
    "close_owned_sessions": ("remotify.core.sessions", "close_owned_sessions"),
    "session_scope": ("remotify.core.sessions", "session_scope"),
    "resolve_sessions": ("remotify.core.sessions", "resolve_sessions"),
    "close_sessions": ("remotify.core.sessions", "close_sessions"),
    "SessionHost": ("remotify.core.transport", "SessionHost"),
    "LocalTransport": ("remotify.core.transport", "LocalTransport"),
    "GrpcTransport": ("remotify.core.transport.grpc_transport", "GrpcTransport"),
    "GrpcSessionServer": ("remotify.core.transport.grpc_transport", "GrpcSessionServer"),
    "set_default_transport": ("remotify.core.transport", "set_default_transport"),
    "RemotifyConfig": ("remotify.core.config", "RemotifyConfig"),
    "get_config": ("remotify.core.config", "get_config"),
    "RemotifyError": ("remotify.core.utils.exceptions", "RemotifyError"),
    "RemoteInvocationError": ("remotify.core.utils.exceptions", "RemoteInvocationError"),
    "SessionConnectionError": ("remotify.core.utils.exceptions", "SessionConnectionError"),
    "NoTargetError": ("remotify.core.utils.exceptions", "NoTargetError"),
}

__all__ = ["__version__", *sorted(_EXPORT_MAP.keys())]


def __getattr__(name: str) -> Any:
    """
    Resolve public API symbols lazily.
    """
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'remotify' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
