#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Wire payload serialization for remotify transports.
"""

from .backends import (
    CompressionAlgorithm,
    PickleBackend,
    SerializationBackend,
)

__all__ = [
    "CompressionAlgorithm",
    "PickleBackend",
    "SerializationBackend",
]
