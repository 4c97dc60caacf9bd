"""Tests for decompression selection and the counting object stream."""

import bz2
import gzip
import io
import lzma
import struct

import lz4.frame
import pytest
import snappy

from object_tables.exceptions import FileFormatError
from object_tables.record import CompressionType, CountingObjectStream, wrap_stream_if_compressed
from object_tables.record.compression import XERIAL_MAGIC

PAYLOAD = b"".join(b'{"n": %d, "text": "line %d"}\n' % (n, n) for n in range(2000))


def xerial_snappy(data, chunk_size=4096):
    out = io.BytesIO()
    out.write(XERIAL_MAGIC)
    out.write(struct.pack(">ii", 1, 1))
    for start in range(0, len(data), chunk_size):
        chunk = snappy.compress(data[start:start + chunk_size])
        out.write(struct.pack(">i", len(chunk)))
        out.write(chunk)
    return out.getvalue()


def hadoop_snappy(data, block_size=10000, chunk_size=3000):
    out = io.BytesIO()
    for block_start in range(0, len(data), block_size):
        block = data[block_start:block_start + block_size]
        out.write(struct.pack(">i", len(block)))
        for start in range(0, len(block), chunk_size):
            chunk = snappy.compress(block[start:start + chunk_size])
            out.write(struct.pack(">i", len(chunk)))
            out.write(chunk)
    return out.getvalue()


COMPRESSORS = {
    "bz2": bz2.compress,
    "gz": gzip.compress,
    "xz": lzma.compress,
    "lz4": lz4.frame.compress,
    "xsnappy": xerial_snappy,
    "snappy": hadoop_snappy,
}


@pytest.mark.parametrize("extension", sorted(COMPRESSORS))
def test_decompresses_by_extension(extension):
    raw = io.BytesIO(COMPRESSORS[extension](PAYLOAD))
    with CountingObjectStream(f"/data/a.json.{extension}", raw) as stream:
        assert stream.read() == PAYLOAD
        assert stream.bytes_read == len(PAYLOAD)
    assert raw.closed


def test_uncompressed_stream_is_counted():
    raw = io.BytesIO(PAYLOAD)
    stream = CountingObjectStream("/data/a.json", raw)
    first = stream.readline()
    assert first == b'{"n": 0, "text": "line 0"}\n'
    assert stream.bytes_read >= len(first)
    stream.close()
    stream.close()
    assert raw.closed


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/a.json.bz2", CompressionType.BZIP2),
        ("/a.json.GZ", CompressionType.GZIP),
        ("/a.json.xz", CompressionType.XZ),
        ("/a.json.lz4", CompressionType.LZ4),
        ("/a.json.xsnappy", CompressionType.XERIAL_SNAPPY),
        ("/a.json.snappy", CompressionType.HADOOP_SNAPPY),
        ("/a.json", None),
        ("/a", None),
    ],
)
def test_value_for_path(path, expected):
    assert CompressionType.value_for_path(path) == expected


def test_extension_support():
    assert CompressionType.is_extension_supported("gz")
    assert not CompressionType.is_extension_supported("zip")
    assert CompressionType.GZIP.extension == "gz"


def test_uncompressed_stream_passes_through():
    raw = io.BytesIO(b"{}")
    assert wrap_stream_if_compressed("/a.json", raw) is raw


def test_xerial_stream_without_header():
    stream = CompressionType.XERIAL_SNAPPY.wrap(io.BytesIO(b"not a snappy stream at all"))
    with pytest.raises(FileFormatError):
        stream.read()


def test_truncated_xerial_chunk():
    data = xerial_snappy(PAYLOAD)
    stream = CompressionType.XERIAL_SNAPPY.wrap(io.BytesIO(data[:-10]))
    with pytest.raises(FileFormatError):
        stream.read()


def test_truncated_hadoop_block():
    data = hadoop_snappy(PAYLOAD[:5000])
    stream = CompressionType.HADOOP_SNAPPY.wrap(io.BytesIO(data[:4 + 4 + 10]))
    with pytest.raises(FileFormatError):
        stream.read()
