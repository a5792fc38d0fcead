#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Session transport interface.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Sequence

from ..sessions import Credential, RemoteSession


class SessionTransport(ABC):
    """
    Opens, uses and closes remote sessions.

    ``open`` raises ``SessionConnectionError`` for an unreachable or refusing
    address; ``invoke`` raises ``RemoteInvocationError`` when the body fails
    on the remote side.
    """

    name = "transport"

    @abstractmethod
    def open(self, address: str, credential: Optional[Credential] = None) -> RemoteSession:
        raise NotImplementedError

    @abstractmethod
    def close(self, session: RemoteSession) -> None:
        """Close ``session``. Closing an already closed session is a no-op."""
        raise NotImplementedError

    @abstractmethod
    def invoke(self, session: RemoteSession, body: Callable[..., Any], arguments: Sequence[Any]) -> Any:
        raise NotImplementedError
