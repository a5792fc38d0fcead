#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Exception hierarchy for remotify.

Generation-time errors (introspection, template expansion, compilation) are
fatal to a single generation call and never leave a partial installation.
Invocation-time errors (missing targets, connection failures, remote
failures) are raised from inside a generated wrapper.
"""

from typing import Any, List, Optional, Sequence


class RemotifyError(Exception):
    """
    Base class for all remotify errors.
    """

    default_error_code = "REMOTIFY_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        return "[{0}] {1}".format(self.error_code, self.message)


# Generation-time errors


class NotIntrospectableError(RemotifyError, TypeError):
    """Raised when a callable does not expose a forwardable parameter list."""

    default_error_code = "NOT_INTROSPECTABLE"

    def __init__(
        self,
        callable_name: str,
        message: Optional[str] = None,
        *,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.callable_name = callable_name
        super().__init__(
            message or "Callable '{0}' cannot be introspected".format(callable_name),
            cause=cause,
        )


class TemplateMismatchError(RemotifyError, ValueError):
    """Raised when a wrapper template has a missing, repeated or unknown placeholder."""

    default_error_code = "TEMPLATE_MISMATCH"

    def __init__(self, placeholder: str, occurrences: int) -> None:
        self.placeholder = placeholder
        self.occurrences = occurrences
        if occurrences == 0:
            detail = "is missing"
        elif occurrences < 0:
            detail = "is not a known placeholder"
        else:
            detail = "appears {0} times".format(occurrences)
        super().__init__(
            "Template placeholder {0} {1}; each placeholder must appear exactly once".format(
                placeholder, detail
            )
        )


class DuplicateParameterNameError(RemotifyError, ValueError):
    """Raised when an original parameter collides with a reserved wrapper name."""

    default_error_code = "DUPLICATE_PARAMETER"

    def __init__(self, parameter_name: str, callable_name: Optional[str] = None) -> None:
        self.parameter_name = parameter_name
        self.callable_name = callable_name
        owner = " of '{0}'".format(callable_name) if callable_name else ""
        super().__init__(
            "Parameter '{0}'{1} collides with a reserved remoting parameter".format(
                parameter_name, owner
            )
        )


class CompilationError(RemotifyError):
    """Raised when a generated definition cannot be compiled or evaluated."""

    default_error_code = "COMPILATION_FAILED"

    def __init__(
        self,
        source: str,
        *,
        lineno: Optional[int] = None,
        offset: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.source = source
        self.lineno = lineno
        self.offset = offset
        position = ""
        if lineno is not None:
            position = " at line {0}".format(lineno)
            if offset is not None:
                position += ", column {0}".format(offset)
        super().__init__(
            "Generated definition failed to compile{0}: {1}".format(position, cause),
            cause=cause,
        )


# Invocation-time errors


class ParameterSetError(RemotifyError, TypeError):
    """Raised when remoting parameters from different parameter sets are combined."""

    default_error_code = "PARAMETER_SET_CONFLICT"


class NoTargetError(RemotifyError):
    """Raised when a wrapper is asked to dispatch with no sessions to run on."""

    default_error_code = "NO_TARGET"

    def __init__(self, function_name: Optional[str] = None) -> None:
        self.function_name = function_name
        subject = "'{0}'".format(function_name) if function_name else "remote call"
        super().__init__(
            "No remoting target for {0}: pass either targets or sessions".format(subject)
        )


class SessionConnectionError(RemotifyError, ConnectionError):
    """Raised when a remote session cannot be opened for an address."""

    default_error_code = "CONNECTION_FAILED"

    def __init__(
        self,
        address: str,
        message: Optional[str] = None,
        *,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.address = address
        super().__init__(
            message or "Failed to open session to '{0}'".format(address),
            cause=cause,
        )


class AuthenticationError(SessionConnectionError):
    """Raised by a session host when a credential is missing or rejected."""

    default_error_code = "AUTHENTICATION_FAILED"


class SessionNotFoundError(RemotifyError, LookupError):
    """Raised when a session id is not (or no longer) known to a host."""

    default_error_code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__("Session '{0}' is not open".format(session_id))


class FunctionNotFoundError(RemotifyError, LookupError):
    """Raised when a name is not bound in a function registry."""

    default_error_code = "FUNCTION_NOT_FOUND"

    def __init__(self, function_name: str) -> None:
        self.function_name = function_name
        super().__init__("Function '{0}' is not registered".format(function_name))


class RemoteInvocationError(RemotifyError):
    """
    Raised when a remote invocation fails.

    A transport raises it for one session (``address`` and the ``remote_*``
    fields are set). Dispatch raises it once after every session has been
    invoked, carrying all per-session ``outcomes``.
    """

    default_error_code = "REMOTE_INVOCATION_FAILED"

    def __init__(
        self,
        message: str,
        *,
        function_name: Optional[str] = None,
        address: Optional[str] = None,
        remote_type_name: Optional[str] = None,
        remote_message: Optional[str] = None,
        remote_traceback: Optional[str] = None,
        outcomes: Optional[Sequence[Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.function_name = function_name
        self.address = address
        self.remote_type_name = remote_type_name
        self.remote_message = remote_message
        self.remote_traceback = remote_traceback
        self.outcomes: List[Any] = list(outcomes or [])
        super().__init__(message, cause=cause)

    @property
    def failures(self) -> List[Any]:
        """Outcomes of the sessions whose invocation failed."""
        return [outcome for outcome in self.outcomes if not outcome.succeeded]


class SerializationError(RemotifyError):
    """Raised when wire payloads cannot be serialized or deserialized."""

    default_error_code = "SERIALIZATION_FAILED"

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        data_type: Optional[str] = None,
        serialization_format: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.operation = operation
        self.data_type = data_type
        self.serialization_format = serialization_format
        super().__init__(message, cause=cause)


class ExceptionTranslator:
    """
    Convert foreign exceptions into remotify errors at transport boundaries.
    """

    @staticmethod
    def as_connection_error(exc: BaseException, *, address: str) -> SessionConnectionError:
        if isinstance(exc, SessionConnectionError):
            return exc
        return SessionConnectionError(
            address,
            "Failed to open session to '{0}': {1}".format(address, exc),
            cause=exc,
        )

    @staticmethod
    def as_remote_invocation_error(
        exc: BaseException,
        *,
        address: Optional[str] = None,
        function_name: Optional[str] = None,
        remote_traceback: Optional[str] = None,
    ) -> RemoteInvocationError:
        if isinstance(exc, RemoteInvocationError):
            return exc
        where = " on '{0}'".format(address) if address else ""
        subject = "'{0}'".format(function_name) if function_name else "Remote call"
        return RemoteInvocationError(
            "{0} failed{1}: {2}: {3}".format(subject, where, type(exc).__name__, exc),
            function_name=function_name,
            address=address,
            remote_type_name=type(exc).__name__,
            remote_message=str(exc),
            remote_traceback=remote_traceback,
            cause=exc,
        )


__all__ = [
    "RemotifyError",
    "NotIntrospectableError",
    "TemplateMismatchError",
    "DuplicateParameterNameError",
    "CompilationError",
    "ParameterSetError",
    "NoTargetError",
    "SessionConnectionError",
    "AuthenticationError",
    "SessionNotFoundError",
    "FunctionNotFoundError",
    "RemoteInvocationError",
    "SerializationError",
    "ExceptionTranslator",
]
