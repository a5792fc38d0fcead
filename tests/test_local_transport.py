#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for the session host and the in-process transport.
"""

import pytest

from remotify.core.sessions import Credential
from remotify.core.transport import LocalTransport, SessionHost
from remotify.core.utils.exceptions import (
    AuthenticationError,
    RemoteInvocationError,
    SessionConnectionError,
    SessionNotFoundError,
)


def echo(*values):
    return values


def test_host_opens_and_closes_sessions():
    host = SessionHost(name="node-a")

    session_id = host.open_session()

    assert host.session_ids() == [session_id]
    assert host.close_session(session_id) is True
    assert host.close_session(session_id) is False
    assert host.session_ids() == []


def test_host_counts_invocations():
    host = SessionHost(name="node-a")
    session_id = host.open_session()

    assert host.execute(session_id, echo, [1, 2]) == (1, 2)
    assert host.execute(session_id, echo, []) == ()
    assert host.get_session(session_id).invocation_count == 2


def test_host_rejects_unknown_session():
    host = SessionHost(name="node-a")

    with pytest.raises(SessionNotFoundError):
        host.execute("missing", echo, [])
    with pytest.raises(SessionNotFoundError):
        host.get_session("missing")


def test_host_authentication():
    host = SessionHost(name="node-a", credentials={"ops": "pw"})

    assert host.requires_authentication is True
    with pytest.raises(AuthenticationError):
        host.open_session()
    with pytest.raises(AuthenticationError):
        host.open_session(Credential("ops", "wrong"))
    session_id = host.open_session(Credential("ops", "pw"))
    assert host.get_session(session_id).username == "ops"


def test_host_session_cap():
    host = SessionHost(name="node-a", max_sessions=1)
    host.open_session()

    with pytest.raises(SessionConnectionError) as exc_info:
        host.open_session()

    assert not isinstance(exc_info.value, AuthenticationError)
    assert host.close_all() == 1


def test_host_rejects_invalid_cap():
    with pytest.raises(ValueError):
        SessionHost(max_sessions=0)


def test_local_transport_unknown_address():
    transport = LocalTransport()

    with pytest.raises(SessionConnectionError) as exc_info:
        transport.open("node-x")

    assert exc_info.value.address == "node-x"


def test_local_transport_keeps_authentication_error_type():
    transport = LocalTransport({"node-a": SessionHost(name="node-a", credentials={"ops": "pw"})})

    with pytest.raises(AuthenticationError) as exc_info:
        transport.open("node-a", Credential("ops", "nope"))

    assert exc_info.value.address == "node-a"


def test_local_transport_invoke_and_close():
    host = SessionHost(name="node-a")
    transport = LocalTransport()
    transport.add_host("node-a", host)

    session = transport.open("node-a")
    assert transport.invoke(session, echo, ["x"]) == ("x",)

    session.close()
    assert session.closed
    assert host.session_ids() == []
    with pytest.raises(RemoteInvocationError):
        transport.invoke(session, echo, [])


def test_local_transport_translates_body_errors():
    transport = LocalTransport({"node-a": SessionHost(name="node-a")})
    session = transport.open("node-a")

    def fail():
        raise ZeroDivisionError("division by zero")

    with pytest.raises(RemoteInvocationError) as exc_info:
        transport.invoke(session, fail, [])

    error = exc_info.value
    assert error.address == "node-a"
    assert error.function_name == "fail"
    assert error.remote_type_name == "ZeroDivisionError"
    assert "ZeroDivisionError" in error.remote_traceback


def test_remove_host_makes_address_unreachable():
    transport = LocalTransport({"node-a": SessionHost(name="node-a")})

    assert transport.remove_host("node-a") is not None
    with pytest.raises(SessionConnectionError):
        transport.open("node-a")
