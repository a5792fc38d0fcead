#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
gRPC session transport.

``GrpcSessionServer`` exposes a ``SessionHost`` as the ``remotify.SessionHost``
service with three unary methods (``OpenSession``, ``CloseSession``,
``Invoke``). ``GrpcTransport`` is the matching client. Requests and replies
are pickled dictionaries; no generated protobuf code is involved.

Wire payloads:

- OpenSession: ``{"credential": {"username", "password"} | None}`` ->
  ``{"session_id"}``
- CloseSession: ``{"session_id"}`` -> ``{"closed": bool}``
- Invoke: ``{"session_id", "body", "arguments"}`` -> ``{"ok": True, "value"}``
  or ``{"ok": False, "error_type", "message", "traceback"}``
"""

import threading
import traceback
from concurrent import futures
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import grpc

from ..config import RemotifyConfig, get_config
from ..data import CompressionAlgorithm, PickleBackend
from ..sessions import Credential, RemoteSession
from ..utils.exceptions import (
    AuthenticationError,
    RemoteInvocationError,
    SerializationError,
    SessionConnectionError,
    SessionNotFoundError,
)
from ..utils.logger import ModernLogger
from .base import SessionTransport
from .host import SessionHost

SERVICE_NAME = "remotify.SessionHost"
OPEN_SESSION_METHOD = "/{0}/OpenSession".format(SERVICE_NAME)
CLOSE_SESSION_METHOD = "/{0}/CloseSession".format(SERVICE_NAME)
INVOKE_METHOD = "/{0}/Invoke".format(SERVICE_NAME)


def _channel_options(max_message_bytes: int) -> List[Tuple[str, Any]]:
    return [
        ("grpc.max_send_message_length", max_message_bytes),
        ("grpc.max_receive_message_length", max_message_bytes),
    ]


def _backend_from_config(config: RemotifyConfig) -> PickleBackend:
    return PickleBackend(
        protocol=config.pickle_protocol,
        compress=config.compress,
        compression_algorithm=CompressionAlgorithm(config.compression),
    )


def _describe_rpc_error(exc: grpc.RpcError) -> str:
    code = exc.code() if hasattr(exc, "code") else None
    details = exc.details() if hasattr(exc, "details") else None
    code_name = code.name if code is not None else "UNKNOWN"
    return "{0}: {1}".format(code_name, details or exc)


class GrpcSessionServer(ModernLogger):
    """
    Serve a ``SessionHost`` over gRPC.

    Example:
        >>> host = SessionHost(name="worker-1")
        >>> server = GrpcSessionServer(host, address="0.0.0.0:50061")
        >>> port = server.start()
        >>> server.wait_for_termination()
    """

    def __init__(
        self,
        host: SessionHost,
        address: str = "127.0.0.1:0",
        max_workers: int = 10,
        config: Optional[RemotifyConfig] = None,
    ) -> None:
        config = config or get_config()
        ModernLogger.__init__(self, name="grpc.server.{0}".format(host.name), level=config.log_level)
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.host = host
        self.address = address
        self.max_workers = max_workers
        self.config = config
        self.port: Optional[int] = None
        self._backend = _backend_from_config(config)
        self._server: Optional[grpc.Server] = None
        self._lock = threading.Lock()

    @property
    def target(self) -> str:
        """Address clients should dial (valid after ``start``)."""
        if self.port is None:
            raise RuntimeError("Server is not started")
        host_part = self.address.rsplit(":", 1)[0]
        if host_part in ("0.0.0.0", "[::]", ""):
            host_part = "127.0.0.1"
        return "{0}:{1}".format(host_part, self.port)

    def start(self) -> int:
        """Start serving and return the bound port."""
        with self._lock:
            if self._server is not None:
                raise RuntimeError("Server is already started")
            server = grpc.server(
                futures.ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="remotify-host-{0}".format(self.host.name),
                ),
                options=_channel_options(self.config.max_message_bytes),
            )
            server.add_generic_rpc_handlers((self._build_handler(),))
            port = server.add_insecure_port(self.address)
            if port == 0:
                raise SessionConnectionError(
                    self.address, "Failed to bind session server to '{0}'".format(self.address)
                )
            server.start()
            self._server = server
            self.port = port
        self.info("Session host '%s' listening on port %d", self.host.name, port)
        return port

    def stop(self, grace: Optional[float] = None) -> None:
        with self._lock:
            server, self._server = self._server, None
        if server is None:
            return
        server.stop(grace).wait()
        closed = self.host.close_all()
        self.info("Session host '%s' stopped (%d session(s) dropped)", self.host.name, closed)

    def wait_for_termination(self, timeout: Optional[float] = None) -> bool:
        if self._server is None:
            return True
        return self._server.wait_for_termination(timeout)

    def __enter__(self) -> "GrpcSessionServer":
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.stop()

    def _build_handler(self) -> grpc.GenericRpcHandler:
        return grpc.method_handlers_generic_handler(
            SERVICE_NAME,
            {
                "OpenSession": grpc.unary_unary_rpc_method_handler(self._open_session),
                "CloseSession": grpc.unary_unary_rpc_method_handler(self._close_session),
                "Invoke": grpc.unary_unary_rpc_method_handler(self._invoke),
            },
        )

    def _decode(self, request: bytes, context: grpc.ServicerContext) -> Dict[str, Any]:
        try:
            payload = self._backend.deserialize(request)
        except SerializationError as exc:
            self.warning("Rejected undecodable request: %s", exc)
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, str(exc))
        if not isinstance(payload, dict):
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, "Request payload must be a mapping")
        return payload

    def _open_session(self, request: bytes, context: grpc.ServicerContext) -> bytes:
        payload = self._decode(request, context)
        raw_credential = payload.get("credential")
        credential = Credential(**raw_credential) if raw_credential else None
        try:
            session_id = self.host.open_session(credential)
        except AuthenticationError as exc:
            context.abort(grpc.StatusCode.UNAUTHENTICATED, exc.message)
        except SessionConnectionError as exc:
            context.abort(grpc.StatusCode.RESOURCE_EXHAUSTED, exc.message)
        return self._backend.serialize({"session_id": session_id})

    def _close_session(self, request: bytes, context: grpc.ServicerContext) -> bytes:
        payload = self._decode(request, context)
        closed = self.host.close_session(payload.get("session_id", ""))
        return self._backend.serialize({"closed": closed})

    def _invoke(self, request: bytes, context: grpc.ServicerContext) -> bytes:
        payload = self._decode(request, context)
        try:
            value = self.host.execute(
                payload.get("session_id", ""),
                payload["body"],
                payload.get("arguments", []),
            )
        except SessionNotFoundError as exc:
            context.abort(grpc.StatusCode.NOT_FOUND, exc.message)
        except Exception as exc:
            self.warning("Invocation failed in session %s: %s", payload.get("session_id"), exc)
            return self._error_reply(exc, traceback.format_exc())

        try:
            return self._backend.serialize({"ok": True, "value": value})
        except SerializationError as exc:
            return self._error_reply(exc, traceback.format_exc())

    def _error_reply(self, exc: BaseException, formatted_traceback: str) -> bytes:
        return self._backend.serialize(
            {
                "ok": False,
                "error_type": type(exc).__name__,
                "message": str(exc),
                "traceback": formatted_traceback,
            }
        )


class GrpcTransport(SessionTransport, ModernLogger):
    """
    Client transport for ``GrpcSessionServer`` endpoints.

    One gRPC channel is opened per session. ``connect_timeout`` bounds channel
    readiness and the ``OpenSession`` call; ``invoke_timeout`` (if set) is the
    deadline of every ``Invoke`` call.
    """

    name = "grpc"

    def __init__(self, config: Optional[RemotifyConfig] = None) -> None:
        self.config = config or get_config()
        ModernLogger.__init__(self, name="transport.grpc", level=self.config.log_level)
        self._backend = _backend_from_config(self.config)

    def open(self, address: str, credential: Optional[Credential] = None) -> RemoteSession:
        channel = grpc.insecure_channel(address, options=_channel_options(self.config.max_message_bytes))
        try:
            session_id = self._open_on_channel(channel, address, credential)
        except BaseException:
            channel.close()
            raise

        session = RemoteSession(address=address, session_id=session_id, transport=self, handle=channel)
        self.debug("Opened session %s to '%s'", session.session_id, address)
        return session

    def _open_on_channel(self, channel: grpc.Channel, address: str, credential: Optional[Credential]) -> str:
        try:
            grpc.channel_ready_future(channel).result(timeout=self.config.connect_timeout)
        except grpc.FutureTimeoutError as exc:
            raise SessionConnectionError(
                address,
                "Session host '{0}' not reachable within {1}s".format(address, self.config.connect_timeout),
                cause=exc,
            ) from exc

        request = {"credential": None}
        if credential is not None:
            request["credential"] = {"username": credential.username, "password": credential.password}
        try:
            reply = self._call(channel, OPEN_SESSION_METHOD, request, self.config.connect_timeout)
        except grpc.RpcError as exc:
            error_type = SessionConnectionError
            if hasattr(exc, "code") and exc.code() == grpc.StatusCode.UNAUTHENTICATED:
                error_type = AuthenticationError
            raise error_type(
                address,
                "Session host '{0}' refused the session ({1})".format(address, _describe_rpc_error(exc)),
                cause=exc,
            ) from exc
        except SerializationError as exc:
            raise SessionConnectionError(
                address,
                "Session host '{0}' sent an unreadable OpenSession reply: {1}".format(address, exc.message),
                cause=exc,
            ) from exc

        session_id = reply.get("session_id") if isinstance(reply, dict) else None
        if not session_id:
            raise SessionConnectionError(
                address, "Session host '{0}' sent an OpenSession reply without a session id".format(address)
            )
        return session_id

    def close(self, session: RemoteSession) -> None:
        if session.closed:
            return
        channel: grpc.Channel = session.handle
        try:
            self._call(channel, CLOSE_SESSION_METHOD, {"session_id": session.session_id}, self.config.connect_timeout)
        except grpc.RpcError as exc:
            self.warning(
                "Session %s to '%s' did not close cleanly: %s",
                session.session_id,
                session.address,
                _describe_rpc_error(exc),
            )
        finally:
            channel.close()
            session.mark_closed()

    def invoke(self, session: RemoteSession, body: Callable[..., Any], arguments: Sequence[Any]) -> Any:
        function_name = getattr(body, "__name__", None)
        if session.closed:
            raise RemoteInvocationError(
                "Session {0} to '{1}' is closed".format(session.session_id, session.address),
                function_name=function_name,
                address=session.address,
            )
        request = {"session_id": session.session_id, "body": body, "arguments": list(arguments)}
        try:
            reply = self._call(session.handle, INVOKE_METHOD, request, self.config.invoke_timeout)
        except SerializationError as exc:
            raise RemoteInvocationError(
                "Cannot send '{0}' to '{1}': {2}".format(function_name, session.address, exc.message),
                function_name=function_name,
                address=session.address,
                cause=exc,
            ) from exc
        except grpc.RpcError as exc:
            raise RemoteInvocationError(
                "'{0}' failed on '{1}': {2}".format(function_name, session.address, _describe_rpc_error(exc)),
                function_name=function_name,
                address=session.address,
                cause=exc,
            ) from exc

        if reply.get("ok"):
            return reply.get("value")
        raise RemoteInvocationError(
            "'{0}' failed on '{1}': {2}: {3}".format(
                function_name, session.address, reply.get("error_type"), reply.get("message")
            ),
            function_name=function_name,
            address=session.address,
            remote_type_name=reply.get("error_type"),
            remote_message=reply.get("message"),
            remote_traceback=reply.get("traceback"),
        )

    def _call(self, channel: grpc.Channel, method: str, request: Dict[str, Any], timeout: Optional[float]) -> Dict[str, Any]:
        rpc = channel.unary_unary(method)
        raw = rpc(self._backend.serialize(request), timeout=timeout)
        return self._backend.deserialize(raw)
