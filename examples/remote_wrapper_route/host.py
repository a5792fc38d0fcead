#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Session host for the remote wrapper route.
"""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

import tasks  # noqa: E402,F401
from remotify import GrpcSessionServer, SessionHost  # noqa: E402

HOST_ADDRESS = os.getenv("REMOTIFY_HOST_ADDRESS", "127.0.0.1:50061")


class HostApplication:
    """
    Serves one session host that accepts the ``ops`` user.
    """

    def __init__(self, address: str) -> None:
        host = SessionHost(name="ops-host", credentials={"ops": "change-me"})
        self._server = GrpcSessionServer(host, address=address)

    def serve(self) -> None:
        self._server.start()
        try:
            self._server.wait_for_termination()
        finally:
            self._server.stop()


if __name__ == "__main__":
    HostApplication(HOST_ADDRESS).serve()
