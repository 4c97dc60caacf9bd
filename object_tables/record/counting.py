"""Object read pipeline: decompression, buffering and byte counting."""

import io
import logging
from contextlib import ExitStack
from typing import BinaryIO

from .compression import wrap_stream_if_compressed

logger = logging.getLogger(__name__)

STREAM_BUFFER_SIZE = 65536


class CountingStream(io.RawIOBase):
    """Raw stream that counts the bytes read through it."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self.count = 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        data = self._stream.read(len(buffer))
        size = len(data)
        buffer[:size] = data
        self.count += size
        return size


class CountingObjectStream(io.BufferedReader):
    """Decompressed, buffered and counted view of an object's bytes.

    Layers, from the store outwards: the raw object stream, a decompressor
    chosen by the object's extension, a read buffer, and a byte counter.
    ``bytes_read`` counts decompressed bytes. Closing this stream closes
    every layer, including the raw object stream.
    """

    def __init__(self, path: str, raw_stream: BinaryIO, buffer_size: int = STREAM_BUFFER_SIZE):
        self.path = path
        self._layers = ExitStack()
        self._layers.callback(raw_stream.close)
        try:
            decompressed = wrap_stream_if_compressed(path, raw_stream)
            if decompressed is not raw_stream:
                self._layers.callback(decompressed.close)
            self._counter = CountingStream(decompressed)
        except BaseException:
            self._layers.close()
            raise
        super().__init__(self._counter, buffer_size)

    @property
    def bytes_read(self) -> int:
        return self._counter.count

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()
        finally:
            self._layers.close()
