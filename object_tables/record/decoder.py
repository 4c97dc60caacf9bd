"""Streaming decoder for whitespace-delimited JSON records."""

import io
import json
import logging
from decimal import Decimal
from typing import Any, BinaryIO, Dict, Iterator, Tuple

from ..exceptions import FileFormatError

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORD_BYTES = 16 * 1024 * 1024

# Floats decode to Decimal so no precision is lost before coercion.
JSON_DECODER = json.JSONDecoder(parse_float=Decimal)


def read_records(
    stream: BinaryIO,
    path: str,
    max_record_chars: int = DEFAULT_MAX_RECORD_BYTES,
) -> Iterator[Tuple[int, Dict[str, Any]]]:
    """Decode a stream of JSON objects separated by whitespace.

    Records are usually one per line but may span lines, and several may
    share a line. The stream is read incrementally; it is never loaded whole.

    Args:
        stream: Binary stream of UTF-8 text
        path: Object path, attached to errors
        max_record_chars: Upper bound on the text buffered for one record

    Yields:
        Tuples of (1-based line number where the record starts, record)

    Raises:
        FileFormatError: On malformed JSON, a record that is not an object,
            truncated input or an oversized record
    """
    text = io.TextIOWrapper(stream, encoding="utf-8", newline="")
    buffer = ""
    buffer_line = 1
    line_number = 0

    try:
        for line in text:
            line_number += 1
            if not buffer:
                if not line.strip():
                    continue
                buffer_line = line_number
            buffer += line

            while buffer:
                stripped = buffer.lstrip()
                if not stripped:
                    buffer = ""
                    break
                record_line = buffer_line + buffer[: len(buffer) - len(stripped)].count("\n")
                try:
                    value, end = JSON_DECODER.raw_decode(stripped)
                except json.JSONDecodeError as e:
                    if e.pos < len(stripped.rstrip()):
                        raise _malformed(path, record_line, e.msg) from e
                    # Record continues on the next line
                    buffer = stripped
                    buffer_line = record_line
                    break

                if not isinstance(value, dict):
                    raise _malformed(
                        path, record_line, f"expected a JSON object, got {type(value).__name__}"
                    )
                yield record_line, value
                buffer = stripped[end:]
                buffer_line = record_line + stripped[:end].count("\n")

            if len(buffer) > max_record_chars:
                raise _malformed(
                    path, buffer_line, f"record exceeds {max_record_chars} characters"
                )
    except UnicodeDecodeError as e:
        raise _malformed(path, line_number + 1, f"invalid UTF-8: {e.reason}") from e
    finally:
        if not stream.closed:
            text.detach()

    if buffer.strip():
        raise _malformed(path, buffer_line, "unexpected end of input")


def parse_single_value(line: str) -> Any:
    """Parse text holding exactly one JSON value.

    Raises:
        ValueError: If the text is not exactly one JSON value
    """
    stripped = line.strip()
    value, end = JSON_DECODER.raw_decode(stripped)
    if end != len(stripped):
        raise json.JSONDecodeError("Extra data", stripped, end)
    return value


def _malformed(path: str, line_number: int, reason: str) -> FileFormatError:
    return FileFormatError(
        "Malformed JSON record", object_path=path, line_number=line_number, reason=reason
    )
