#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Remote dispatch: run one body on every resolved session.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from .sessions import RemoteSession
from .utils.exceptions import ExceptionTranslator, NoTargetError, RemoteInvocationError
from .utils.logger import ModernLogger

_logger = ModernLogger(name="dispatch")


@dataclass
class InvocationOutcome:
    """Result of invoking the body on one session."""

    session: RemoteSession
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def address(self) -> str:
        return self.session.address


def invoke_on_session(session: RemoteSession, body: Callable[..., Any], arguments: Sequence[Any]) -> InvocationOutcome:
    """
    Invoke ``body`` on one session and capture the outcome instead of raising.
    """
    try:
        value = session.transport.invoke(session, body, arguments)
    except Exception as exc:
        error = ExceptionTranslator.as_remote_invocation_error(
            exc,
            address=session.address,
            function_name=getattr(body, "__name__", None),
        )
        return InvocationOutcome(session=session, error=error)
    return InvocationOutcome(session=session, value=value)


def dispatch(
    sessions: Sequence[RemoteSession],
    body: Callable[..., Any],
    arguments: Sequence[Any],
    *,
    max_parallel: int = 1,
    function_name: Optional[str] = None,
) -> List[Any]:
    """
    Invoke ``body(*arguments)`` on every session.

    Every session is invoked even if an earlier one fails. Results come back
    in session order. With ``max_parallel > 1`` sessions are invoked from a
    thread pool; ordering of the returned list is unchanged.

    Raises:
        NoTargetError: ``sessions`` is empty.
        RemoteInvocationError: at least one session failed; ``outcomes`` holds
            the result or error of every session.
    """
    function_name = function_name or getattr(body, "__name__", None)
    if not sessions:
        raise NoTargetError(function_name)
    if max_parallel < 1:
        raise ValueError("max_parallel must be at least 1")

    workers = min(max_parallel, len(sessions))
    if workers == 1:
        outcomes = [invoke_on_session(session, body, arguments) for session in sessions]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="remotify-dispatch") as pool:
            outcomes = list(pool.map(lambda session: invoke_on_session(session, body, arguments), sessions))

    failures = [outcome for outcome in outcomes if not outcome.succeeded]
    if failures:
        for failure in failures:
            _logger.warning("'%s' failed on '%s': %s", function_name, failure.address, failure.error)
        raise RemoteInvocationError(
            "'{0}' failed on {1} of {2} session(s): {3}".format(
                function_name,
                len(failures),
                len(outcomes),
                ", ".join(failure.address for failure in failures),
            ),
            function_name=function_name,
            outcomes=outcomes,
        )

    _logger.debug("'%s' completed on %d session(s)", function_name, len(outcomes))
    return [outcome.value for outcome in outcomes]
