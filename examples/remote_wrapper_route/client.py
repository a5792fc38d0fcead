#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Client for the remote wrapper route.

Generates ``disk_usage_remote`` and ``host_summary_remote`` and calls them
once with per-call sessions and once with reused sessions.
"""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from tasks import disk_usage, host_summary  # noqa: E402
from remotify import Credential, generate_remote_wrapper, session_scope  # noqa: E402

HOST_ADDRESS = os.getenv("REMOTIFY_HOST_ADDRESS", "127.0.0.1:50061")
CREDENTIAL = Credential("ops", os.getenv("REMOTIFY_HOST_PASSWORD", "change-me"))


class RemoteWrapperDemo:
    def __init__(self) -> None:
        self.disk_usage_remote = generate_remote_wrapper(disk_usage)
        self.host_summary_remote = generate_remote_wrapper(host_summary)

    def run(self) -> None:
        usage = self.disk_usage_remote(targets=[HOST_ADDRESS], credential=CREDENTIAL, human=True)
        print(f"disk_usage_remote -> {usage}")

        with session_scope([HOST_ADDRESS], credential=CREDENTIAL) as sessions:
            print(f"host_summary_remote -> {self.host_summary_remote(sessions=sessions)}")
            print(f"disk_usage_remote(path='/tmp') -> {self.disk_usage_remote(sessions=sessions, path='/tmp')}")


if __name__ == "__main__":
    RemoteWrapperDemo().run()
