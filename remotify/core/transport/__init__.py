#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Session transports and the process default transport.

The gRPC transport is imported lazily so that in-process use does not load
grpc.
"""

import threading
from typing import Optional

from .base import SessionTransport
from .host import HostSession, SessionHost
from .local import LocalTransport

_default_transport_lock = threading.Lock()
_default_transport: Optional[SessionTransport] = None


def get_default_transport() -> SessionTransport:
    """
    Return the process default transport, creating a ``GrpcTransport`` on first use.
    """
    global _default_transport
    with _default_transport_lock:
        if _default_transport is None:
            from .grpc_transport import GrpcTransport

            _default_transport = GrpcTransport()
        return _default_transport


def set_default_transport(transport: Optional[SessionTransport]) -> None:
    """
    Replace the process default transport (``None`` restores the gRPC default).
    """
    global _default_transport
    with _default_transport_lock:
        _default_transport = transport


__all__ = [
    "HostSession",
    "LocalTransport",
    "SessionHost",
    "SessionTransport",
    "get_default_transport",
    "set_default_transport",
]
