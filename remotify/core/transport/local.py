#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
In-process transport that routes addresses to ``SessionHost`` objects.
"""

import threading
import traceback
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from ..sessions import Credential, RemoteSession
from ..utils.exceptions import ExceptionTranslator, RemoteInvocationError, SessionConnectionError
from ..utils.logger import ModernLogger
from .base import SessionTransport
from .host import SessionHost


class LocalTransport(SessionTransport, ModernLogger):
    """
    Transport whose "remote" targets live in the current process.

    Useful for development and tests: every address maps to a ``SessionHost``
    and invocations run on the calling thread.
    """

    name = "local"

    def __init__(self, hosts: Optional[Mapping[str, SessionHost]] = None) -> None:
        ModernLogger.__init__(self, name="transport.local")
        self._hosts: Dict[str, SessionHost] = dict(hosts or {})
        self._lock = threading.Lock()

    def add_host(self, address: str, host: SessionHost) -> None:
        with self._lock:
            self._hosts[address] = host

    def remove_host(self, address: str) -> Optional[SessionHost]:
        with self._lock:
            return self._hosts.pop(address, None)

    def open(self, address: str, credential: Optional[Credential] = None) -> RemoteSession:
        with self._lock:
            host = self._hosts.get(address)
        if host is None:
            raise SessionConnectionError(address, "No host is listening at '{0}'".format(address))
        try:
            session_id = host.open_session(credential)
        except SessionConnectionError as exc:
            raise type(exc)(address, exc.message, cause=exc) from exc
        return RemoteSession(address=address, session_id=session_id, transport=self, handle=host)

    def close(self, session: RemoteSession) -> None:
        if session.closed:
            return
        host: SessionHost = session.handle
        host.close_session(session.session_id)
        session.mark_closed()

    def invoke(self, session: RemoteSession, body: Callable[..., Any], arguments: Sequence[Any]) -> Any:
        if session.closed:
            raise RemoteInvocationError(
                "Session {0} to '{1}' is closed".format(session.session_id, session.address),
                address=session.address,
            )
        host: SessionHost = session.handle
        try:
            return host.execute(session.session_id, body, list(arguments))
        except Exception as exc:
            raise ExceptionTranslator.as_remote_invocation_error(
                exc,
                address=session.address,
                function_name=getattr(body, "__name__", None),
                remote_traceback=traceback.format_exc(),
            ) from exc
