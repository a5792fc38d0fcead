#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Remote sessions, session resolution and session teardown.

Ownership rule: sessions opened from ``targets`` belong to the invocation
that opened them and are closed by it. Sessions passed in as ``sessions``
belong to the caller and are never closed here.
"""

import sys
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Sequence

from .utils.exceptions import ExceptionTranslator, ParameterSetError, SessionConnectionError
from .utils.logger import ModernLogger

if TYPE_CHECKING:
    from .transport.base import SessionTransport

_logger = ModernLogger(name="sessions")


@dataclass(frozen=True)
class Credential:
    """Username/password pair sent when opening a session."""

    username: str
    password: str = field(repr=False)


class SessionState(Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(eq=False)
class RemoteSession:
    """
    An open connection to one remote execution target.

    ``handle`` holds transport-specific state (a gRPC channel, a host object).
    """

    address: str
    session_id: str
    transport: "SessionTransport" = field(repr=False)
    handle: Any = field(default=None, repr=False)
    state: SessionState = SessionState.OPEN
    opened_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    local_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    def mark_closed(self) -> None:
        self.state = SessionState.CLOSED

    def close(self) -> None:
        """Close through the transport that opened this session."""
        if self.closed:
            return
        self.transport.close(self)


SessionList = List[RemoteSession]


@dataclass(frozen=True)
class RemotingOptions:
    """
    The remoting arguments a wrapper was called with.

    ``targets`` (optionally with ``credential``) and ``sessions`` are mutually
    exclusive. Supplying neither is allowed here and reported at dispatch.
    """

    targets: Optional[Sequence[str]] = None
    credential: Optional[Credential] = None
    sessions: Optional[Sequence[RemoteSession]] = None

    def __post_init__(self) -> None:
        if isinstance(self.targets, str):
            object.__setattr__(self, "targets", [self.targets])
        if self.targets is not None and self.sessions is not None:
            raise ParameterSetError(
                "'targets' and 'sessions' cannot be combined; pass one or the other"
            )
        if self.credential is not None and self.sessions is not None:
            raise ParameterSetError("'credential' is only valid together with 'targets'")

    @property
    def owns_sessions(self) -> bool:
        """True when sessions are opened (and therefore closed) by the invocation."""
        return self.targets is not None and self.sessions is None

    @classmethod
    def from_bindings(cls, bindings: Mapping[str, Any]) -> "RemotingOptions":
        return cls(
            targets=bindings.get("targets"),
            credential=bindings.get("credential"),
            sessions=bindings.get("sessions"),
        )


def inspect_caller_bindings(depth: int = 1) -> Dict[str, Any]:
    """
    Return the bound local values of a frame above the current one.

    ``depth=1`` is the caller of the function that calls this helper.
    """
    frame = sys._getframe(depth + 1)
    try:
        return dict(frame.f_locals)
    finally:
        del frame


def _options_or_caller(options: Optional[RemotingOptions], depth: int) -> RemotingOptions:
    if options is not None:
        return options
    return RemotingOptions.from_bindings(inspect_caller_bindings(depth + 1))


def resolve_sessions(
    options: Optional[RemotingOptions] = None,
    transport: Optional["SessionTransport"] = None,
) -> SessionList:
    """
    Decide which sessions an invocation runs on.

    - ``sessions`` given: returned as-is, ownership stays with the caller.
    - ``targets`` given: one new session per address, owned by this invocation.
    - neither: an empty list.

    Without ``options`` the immediate caller's bound ``targets``,
    ``credential`` and ``sessions`` locals are read instead.

    If opening any address fails, the sessions already opened are torn down
    before ``SessionConnectionError`` is raised for the failing address.
    """
    options = _options_or_caller(options, 1)

    if options.sessions is not None:
        _logger.debug("Using %d caller-owned session(s)", len(options.sessions))
        return list(options.sessions)

    if options.targets is None:
        return []

    if transport is None:
        from .transport import get_default_transport

        transport = get_default_transport()

    opened: SessionList = []
    for address in options.targets:
        try:
            session = transport.open(address, options.credential)
        except Exception as exc:
            _logger.warning(
                "Opening session to '%s' failed; closing %d already opened", address, len(opened)
            )
            close_sessions(opened, options)
            if isinstance(exc, SessionConnectionError):
                raise
            raise ExceptionTranslator.as_connection_error(exc, address=address) from exc
        opened.append(session)
        _logger.debug("Opened session %s to '%s'", session.session_id, address)
    return opened


def close_sessions(sessions: Sequence[RemoteSession], options: Optional[RemotingOptions] = None) -> int:
    """
    Close the sessions an invocation opened itself.

    Does nothing when the sessions were supplied by the caller. Every owned
    session is attempted; a failure to close one is logged and the rest are
    still closed. Returns the number of sessions closed.

    Without ``options`` the immediate caller's bound locals decide ownership.
    """
    options = _options_or_caller(options, 1)
    if not options.owns_sessions:
        return 0

    closed = 0
    for session in sessions:
        if session.closed:
            continue
        try:
            session.close()
        except Exception as exc:
            _logger.warning("Failed to close session %s to '%s': %s", session.session_id, session.address, exc)
            continue
        closed += 1
    if closed:
        _logger.debug("Closed %d owned session(s)", closed)
    return closed


def open_sessions(
    targets: Sequence[str],
    credential: Optional[Credential] = None,
    transport: Optional["SessionTransport"] = None,
) -> SessionList:
    """
    Open caller-owned sessions for reuse across several wrapper calls.

    Close them with ``close_owned_sessions`` or use ``session_scope``.
    """
    return resolve_sessions(RemotingOptions(targets=targets, credential=credential), transport)


def close_owned_sessions(sessions: Sequence[RemoteSession]) -> int:
    """Close sessions obtained from ``open_sessions``."""
    return close_sessions(sessions, RemotingOptions(targets=[session.address for session in sessions]))


@contextmanager
def session_scope(
    targets: Sequence[str],
    credential: Optional[Credential] = None,
    transport: Optional["SessionTransport"] = None,
) -> Iterator[SessionList]:
    """
    Open sessions for the duration of a ``with`` block and always close them.
    """
    sessions = open_sessions(targets, credential, transport)
    try:
        yield sessions
    finally:
        close_owned_sessions(sessions)
