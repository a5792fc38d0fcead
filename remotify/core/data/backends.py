#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Serialization backends for transport payloads.
"""

import gzip
import pickle
import zlib
from enum import Enum
from typing import Any, Dict, Protocol, runtime_checkable

from ..utils.exceptions import SerializationError


class CompressionAlgorithm(Enum):
    NONE = "none"
    ZLIB = "zlib"
    GZIP = "gzip"


@runtime_checkable
class SerializationBackend(Protocol):
    """Protocol defining the interface for serialization backends"""

    def serialize(self, obj: Any) -> bytes:
        """Serialize an object to bytes"""
        ...

    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes back to object"""
        ...


@runtime_checkable
class CompressionCodec(Protocol):
    """Protocol for compression/decompression strategies."""

    def compress(self, data: bytes, level: int) -> bytes:
        ...

    def decompress(self, data: bytes) -> bytes:
        ...


class NoCompressionCodec:
    """No-op compression strategy."""

    def compress(self, data: bytes, level: int) -> bytes:
        return data

    def decompress(self, data: bytes) -> bytes:
        return data


class ZlibCompressionCodec:
    def compress(self, data: bytes, level: int) -> bytes:
        return zlib.compress(data, level=level)

    def decompress(self, data: bytes) -> bytes:
        return zlib.decompress(data)


class GzipCompressionCodec:
    def compress(self, data: bytes, level: int) -> bytes:
        return gzip.compress(data, compresslevel=level)

    def decompress(self, data: bytes) -> bytes:
        return gzip.decompress(data)


_CODECS: Dict[CompressionAlgorithm, CompressionCodec] = {
    CompressionAlgorithm.NONE: NoCompressionCodec(),
    CompressionAlgorithm.ZLIB: ZlibCompressionCodec(),
    CompressionAlgorithm.GZIP: GzipCompressionCodec(),
}

# Upper bound accepted by safe-mode checks.
MAX_PAYLOAD_BYTES = 1024 * 1024 * 1024


class PickleBackend:
    """
    Pickle-based serialization backend.

    Callables are pickled by reference (module and qualified name), so a
    function sent as an invocation body must be importable on the receiving
    side.
    """

    format_name = "pickle"

    def __init__(
        self,
        protocol: int = 4,
        safe_mode: bool = True,
        compress: bool = False,
        compression_algorithm: CompressionAlgorithm = CompressionAlgorithm.ZLIB,
        compression_level: int = 6,
    ) -> None:
        if protocol not in range(2, pickle.HIGHEST_PROTOCOL + 1):
            raise ValueError(
                f"Unsupported pickle protocol {protocol}. "
                f"Supported range: 2-{pickle.HIGHEST_PROTOCOL}"
            )
        if not 0 <= compression_level <= 9:
            raise ValueError("compression_level must be in the range 0-9")

        self.protocol = protocol
        self.safe_mode = safe_mode
        self.compress = compress
        self.compression_algorithm = compression_algorithm
        self.compression_level = compression_level
        self._codec = _CODECS[compression_algorithm] if compress else _CODECS[CompressionAlgorithm.NONE]

    def serialize(self, obj: Any) -> bytes:
        try:
            data = pickle.dumps(obj, protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(
                operation="serialize",
                message=f"Pickle serialization failed: {e}",
                data_type=type(obj).__name__,
                serialization_format=self.format_name,
                cause=e,
            ) from e
        return self._codec.compress(data, self.compression_level)

    def deserialize(self, data: bytes) -> Any:
        if not data:
            return None
        try:
            data = self._codec.decompress(data)
            if self.safe_mode:
                self._validate_pickle_data(data)
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, ValueError, zlib.error, OSError,
                AttributeError, ImportError) as e:
            raise SerializationError(
                operation="deserialize",
                message=f"Pickle deserialization failed: {e}",
                serialization_format=self.format_name,
                cause=e,
            ) from e

    def _validate_pickle_data(self, data: bytes) -> None:
        """
        Reject payloads that cannot be a pickle stream before unpickling.
        """
        if len(data) < 4:
            raise SerializationError(
                operation="deserialize",
                message="Invalid pickle data: too short",
                serialization_format=self.format_name,
            )
        # Protocol 2+ streams start with the PROTO opcode.
        if data[0] != 0x80:
            raise SerializationError(
                operation="deserialize",
                message="Invalid pickle data: bad magic bytes",
                serialization_format=self.format_name,
            )
        if len(data) > MAX_PAYLOAD_BYTES:
            raise SerializationError(
                operation="deserialize",
                message=f"Pickle data too large: {len(data)} bytes",
                serialization_format=self.format_name,
            )
