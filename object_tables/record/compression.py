"""Selection of decompression by object file extension."""

import bz2
import gzip
import io
import lzma
import struct
from enum import Enum
from typing import BinaryIO, Iterator, Optional

import lz4.frame
import snappy

from ..exceptions import FileFormatError
from ..storage.base import file_extension

XERIAL_MAGIC = b"\x82SNAPPY\x00"
XERIAL_HEADER_SIZE = 16  # magic + version + compatible version
_INT = struct.Struct(">i")


class _ChunkedReader(io.RawIOBase):
    """Raw stream over an iterator of decompressed chunks."""

    def __init__(self, chunks: Iterator[bytes]):
        self._chunks = chunks
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending:
            chunk = next(self._chunks, None)
            if chunk is None:
                return 0
            self._pending = chunk
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


def _read_exactly(stream: BinaryIO, size: int, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise FileFormatError(
            f"Unexpected end of snappy stream while reading {what}",
            expected_bytes=size,
            actual_bytes=len(data),
        )
    return data


def _read_length(stream: BinaryIO) -> Optional[int]:
    """Read a big-endian length prefix, or None at a clean end of stream."""
    prefix = stream.read(_INT.size)
    if not prefix:
        return None
    if len(prefix) != _INT.size:
        raise FileFormatError("Truncated length prefix in snappy stream")
    return _INT.unpack(prefix)[0]


def _xerial_chunks(stream: BinaryIO) -> Iterator[bytes]:
    header = stream.read(XERIAL_HEADER_SIZE)
    if not header.startswith(XERIAL_MAGIC):
        raise FileFormatError("Missing Xerial snappy stream header")
    while True:
        length = _read_length(stream)
        if length is None:
            return
        yield snappy.uncompress(_read_exactly(stream, length, "chunk"))


def _hadoop_chunks(stream: BinaryIO) -> Iterator[bytes]:
    while True:
        block_size = _read_length(stream)
        if block_size is None:
            return
        produced = 0
        while produced < block_size:
            length = _read_length(stream)
            if length is None:
                raise FileFormatError(
                    "Unexpected end of Hadoop snappy block",
                    block_size=block_size,
                    decompressed=produced,
                )
            chunk = snappy.uncompress(_read_exactly(stream, length, "chunk"))
            produced += len(chunk)
            yield chunk


def _xerial_snappy(stream: BinaryIO) -> BinaryIO:
    return io.BufferedReader(_ChunkedReader(_xerial_chunks(stream)))


def _hadoop_snappy(stream: BinaryIO) -> BinaryIO:
    return io.BufferedReader(_ChunkedReader(_hadoop_chunks(stream)))


class CompressionType(Enum):
    """Compression formats recognized by file extension."""

    BZIP2 = "bz2"
    GZIP = "gz"
    XZ = "xz"
    LZ4 = "lz4"
    XERIAL_SNAPPY = "xsnappy"
    HADOOP_SNAPPY = "snappy"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def value_for_extension(cls, extension: str) -> Optional["CompressionType"]:
        try:
            return cls(extension.lower())
        except ValueError:
            return None

    @classmethod
    def value_for_path(cls, path: str) -> Optional["CompressionType"]:
        extension = file_extension(path)
        if not extension:
            return None
        return cls.value_for_extension(extension)

    @classmethod
    def is_extension_supported(cls, extension: str) -> bool:
        return cls.value_for_extension(extension) is not None

    def wrap(self, stream: BinaryIO) -> BinaryIO:
        """Wrap a compressed stream in a decompressing reader.

        Closing the returned reader does not close ``stream``.
        """
        return _DECOMPRESSORS[self](stream)


_DECOMPRESSORS = {
    CompressionType.BZIP2: lambda stream: bz2.BZ2File(stream, "rb"),
    CompressionType.GZIP: lambda stream: gzip.GzipFile(fileobj=stream, mode="rb"),
    CompressionType.XZ: lambda stream: lzma.LZMAFile(stream, "rb"),
    CompressionType.LZ4: lambda stream: lz4.frame.LZ4FrameFile(stream, mode="rb"),
    CompressionType.XERIAL_SNAPPY: _xerial_snappy,
    CompressionType.HADOOP_SNAPPY: _hadoop_snappy,
}


def wrap_stream_if_compressed(path: str, stream: BinaryIO) -> BinaryIO:
    """Decompress ``stream`` according to the extension of ``path``.

    Streams of objects without a compression extension are returned as is.
    """
    compression = CompressionType.value_for_path(path)
    if compression is None:
        return stream
    return compression.wrap(stream)
