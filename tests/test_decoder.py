"""Tests for the streaming JSON record decoder."""

import io
from decimal import Decimal

import pytest

from object_tables.exceptions import FileFormatError
from object_tables.record import read_records
from object_tables.record.decoder import parse_single_value


def decode(text, **kwargs):
    return list(read_records(io.BytesIO(text.encode("utf-8")), "/data/a.json", **kwargs))


def test_one_record_per_line():
    assert decode('{"a": 1}\n{"a": 2}\n') == [(1, {"a": 1}), (2, {"a": 2})]


def test_blank_lines_and_missing_final_newline():
    assert decode('\n{"a": 1}\n\n   \n{"a": 2}') == [(2, {"a": 1}), (5, {"a": 2})]


def test_records_spanning_lines():
    text = '{"a": 1,\n "b": [1,\n 2]}\n{"a": 3}\n'
    assert decode(text) == [(1, {"a": 1, "b": [1, 2]}), (4, {"a": 3})]


def test_several_records_on_one_line():
    assert decode('{"a": 1} {"a": 2}\n{"a": 3}') == [(1, {"a": 1}), (1, {"a": 2}), (2, {"a": 3})]


def test_floats_decode_to_decimal():
    [(_, record)] = decode('{"price": 94.50}')
    assert record["price"] == Decimal("94.50")
    assert isinstance(record["price"], Decimal)


def test_malformed_record_reports_line():
    with pytest.raises(FileFormatError) as excinfo:
        decode('{"a": 1}\n{"a": }\n')
    assert excinfo.value.context["line_number"] == 2
    assert excinfo.value.context["object_path"] == "/data/a.json"


def test_non_object_record():
    with pytest.raises(FileFormatError):
        decode('{"a": 1}\n[1, 2]\n')


def test_truncated_input():
    with pytest.raises(FileFormatError) as excinfo:
        decode('{"a": 1}\n{"a": [1,\n')
    assert "unexpected end of input" in str(excinfo.value)


def test_oversized_record():
    with pytest.raises(FileFormatError):
        decode('{"a": [\n' + "1,\n" * 100 + "1]}\n", max_record_chars=50)


def test_invalid_utf8():
    with pytest.raises(FileFormatError):
        list(read_records(io.BytesIO(b'{"a": "\xff\xfe"}\n'), "/data/a.json"))


def test_stream_left_open_for_caller():
    stream = io.BytesIO(b'{"a": 1}\n')
    list(read_records(stream, "/data/a.json"))
    assert not stream.closed


def test_parse_single_value():
    assert parse_single_value(' {"a": 1}\n') == {"a": 1}
    with pytest.raises(ValueError):
        parse_single_value('{"a": 1} {"b": 2}')
