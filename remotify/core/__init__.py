#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
remotify core module exports (lazy-loaded).
"""

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "RemotifyConfig": ("remotify.core.config", "RemotifyConfig"),
    "get_config": ("remotify.core.config", "get_config"),
    "set_config": ("remotify.core.config", "set_config"),
    "create_config": ("remotify.core.config", "create_config"),
    "ParameterDescriptor": ("remotify.core.signature", "ParameterDescriptor"),
    "CallableReference": ("remotify.core.signature", "CallableReference"),
    "extract_signature": ("remotify.core.signature", "extract_signature"),
    "WrapperTemplate": ("remotify.core.template", "WrapperTemplate"),
    "RemotingParameterSet": ("remotify.core.template", "RemotingParameterSet"),
    "GeneratedDefinition": ("remotify.core.template", "GeneratedDefinition"),
    "DEFAULT_TEMPLATE": ("remotify.core.template", "DEFAULT_TEMPLATE"),
    "expand_template": ("remotify.core.template", "expand_template"),
    "FunctionRegistry": ("remotify.core.registry", "FunctionRegistry"),
    "get_global_registry": ("remotify.core.registry", "get_global_registry"),
    "install_definition": ("remotify.core.installer", "install_definition"),
    "Credential": ("remotify.core.sessions", "Credential"),
    "RemoteSession": ("remotify.core.sessions", "RemoteSession"),
    "RemotingOptions": ("remotify.core.sessions", "RemotingOptions"),
    "resolve_sessions": ("remotify.core.sessions", "resolve_sessions"),
    "close_sessions": ("remotify.core.sessions", "close_sessions"),
    "open_sessions": ("remotify.core.sessions", "open_sessions"),
    "close_owned_sessions": ("remotify.core.sessions", "close_owned_sessions"),
    "session_scope": ("remotify.core.sessions", "session_scope"),
    "dispatch": ("remotify.core.dispatch", "dispatch"),
    "InvocationOutcome": ("remotify.core.dispatch", "InvocationOutcome"),
    "WrapperRuntime": ("remotify.core.generator", "WrapperRuntime"),
    "generate_remote_wrapper": ("remotify.core.generator", "generate_remote_wrapper"),
    "SessionTransport": ("remotify.core.transport", "SessionTransport"),
    "SessionHost": ("remotify.core.transport", "SessionHost"),
    "LocalTransport": ("remotify.core.transport", "LocalTransport"),
    "GrpcTransport": ("remotify.core.transport.grpc_transport", "GrpcTransport"),
    "GrpcSessionServer": ("remotify.core.transport.grpc_transport", "GrpcSessionServer"),
    "get_default_transport": ("remotify.core.transport", "get_default_transport"),
    "set_default_transport": ("remotify.core.transport", "set_default_transport"),
}

__all__ = sorted(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'remotify.core' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
