#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Functions shared by the host and the client.

Bodies travel by reference, so both sides import them from this module.
"""

import os
import platform


def disk_usage(path: str = "/", human: bool = False):
    stats = os.statvfs(path)
    used = (stats.f_blocks - stats.f_bfree) * stats.f_frsize
    if human:
        return "{0:.1f} GiB".format(used / 1024 ** 3)
    return used


def host_summary():
    return {"node": platform.node(), "python": platform.python_version()}
