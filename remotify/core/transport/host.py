#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Remote-side session host.

A ``SessionHost`` owns the session table of one execution target and runs
invocations for open sessions. Transports put it behind a wire
(``GrpcSessionServer``) or call it in-process (``LocalTransport``).
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..sessions import Credential
from ..utils.exceptions import AuthenticationError, SessionConnectionError, SessionNotFoundError
from ..utils.logger import ModernLogger


@dataclass
class HostSession:
    """Host-side record of one open session."""

    session_id: str
    username: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    last_used_at: float = field(default_factory=time.time)
    invocation_count: int = 0

    def touch(self) -> None:
        self.last_used_at = time.time()
        self.invocation_count += 1


class SessionHost(ModernLogger):
    """
    Session table plus executor for one remote target.

    Args:
        name: Host name used in logs and error messages.
        credentials: Optional username -> password table. When set, every
            session must be opened with a matching ``Credential``.
        max_sessions: Optional cap on concurrently open sessions.
    """

    def __init__(
        self,
        name: str = "session-host",
        credentials: Optional[Mapping[str, str]] = None,
        max_sessions: Optional[int] = None,
        log_level: Optional[str] = None,
    ) -> None:
        ModernLogger.__init__(self, name="host.{0}".format(name), level=log_level)
        if max_sessions is not None and max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.name = name
        self._credentials = dict(credentials) if credentials is not None else None
        self.max_sessions = max_sessions
        self._sessions: Dict[str, HostSession] = {}
        self._lock = threading.Lock()

    @property
    def requires_authentication(self) -> bool:
        return self._credentials is not None

    def open_session(self, credential: Optional[Credential] = None) -> str:
        """
        Open a session and return its id.

        Raises:
            AuthenticationError: credential missing or rejected.
            SessionConnectionError: the session cap is reached.
        """
        username = self._authenticate(credential)
        session_id = uuid.uuid4().hex
        with self._lock:
            if self.max_sessions is not None and len(self._sessions) >= self.max_sessions:
                raise SessionConnectionError(
                    self.name,
                    "Host '{0}' refused the session: limit of {1} open sessions reached".format(
                        self.name, self.max_sessions
                    ),
                )
            self._sessions[session_id] = HostSession(session_id=session_id, username=username)
        self.info("Opened session %s (user=%s)", session_id, username or "-")
        return session_id

    def close_session(self, session_id: str) -> bool:
        """Close a session. Returns ``False`` when it was not open."""
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is None:
            return False
        self.info(
            "Closed session %s after %d invocation(s)", session_id, removed.invocation_count
        )
        return True

    def execute(self, session_id: str, body: Callable[..., Any], arguments: Sequence[Any]) -> Any:
        """
        Run ``body(*arguments)`` inside an open session.

        Exceptions raised by the body propagate unchanged.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            session.touch()
        self.debug(
            "Session %s invoking %s", session_id, getattr(body, "__qualname__", repr(body))
        )
        return body(*arguments)

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def get_session(self, session_id: str) -> HostSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def close_all(self) -> int:
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
        return count

    def _authenticate(self, credential: Optional[Credential]) -> Optional[str]:
        if self._credentials is None:
            return credential.username if credential is not None else None
        if credential is None:
            raise AuthenticationError(self.name, "Host '{0}' requires a credential".format(self.name))
        expected = self._credentials.get(credential.username)
        if expected is None or expected != credential.password:
            self.warning("Rejected credential for user '%s'", credential.username)
            raise AuthenticationError(
                self.name,
                "Host '{0}' rejected the credential for '{1}'".format(self.name, credential.username),
            )
        return credential.username
