"""Reading data objects: decompression, decoding, cursors and record sets."""

from .compression import CompressionType, wrap_stream_if_compressed
from .counting import CountingObjectStream
from .decoder import read_records
from .cursor import JsonRecordCursor, CursorState
from .record_set import JsonRecordSet, RecordSetProvider, arrow_schema

__all__ = [
    "CompressionType",
    "wrap_stream_if_compressed",
    "CountingObjectStream",
    "read_records",
    "JsonRecordCursor",
    "CursorState",
    "JsonRecordSet",
    "RecordSetProvider",
    "arrow_schema",
]
