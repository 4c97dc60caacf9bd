"""Tests for table manifest parsing and serialization."""

import json

import pytest

from object_tables.catalog import (
    DataFileType,
    LogicalTable,
    PartitionDefinition,
    index_tables,
    parse_manifest,
    read_manifest,
    serialize_manifest,
)
from object_tables.exceptions import IllegalArgumentError

LENIENT_MANIFEST = """
[
  // comments, unquoted keys, single quotes and trailing commas are fine
  {
    name: 'requests',
    rootPath: "~~/stor/requests",
    dataFileType: "NDJSON",
    partitionDefinition: {
      filterRegex: "requests-(\\\\d{4})\\\\.json$",
      filterPartitions: ["year",],
    },
  },
  {name: "cpu", rootPath: "/user/stor/cpu", dataFileType: "TELEGRAF_NDJSON"},
]
"""


def test_parse_lenient_manifest():
    tables = parse_manifest(LENIENT_MANIFEST, home_directory="/user")

    assert [t.name for t in tables] == ["requests", "cpu"]
    requests = tables[0]
    assert requests.root_path == "/user/stor/requests"
    assert requests.partition_definition.filter_regex == r"requests-(\d{4})\.json$"
    assert requests.partition_definition.filter_partitions == ("year",)
    assert tables[1].data_file_type == DataFileType.TELEGRAF_NDJSON


def test_parse_rejects_malformed_text():
    with pytest.raises(IllegalArgumentError):
        parse_manifest("[{name: ")


def test_parse_rejects_non_array():
    with pytest.raises(IllegalArgumentError):
        parse_manifest('{"name": "t", "rootPath": "/a", "dataFileType": "NDJSON"}')


def test_parse_rejects_bad_entry():
    with pytest.raises(IllegalArgumentError):
        parse_manifest('[{"name": "t", "rootPath": "/a"}]')


def test_duplicate_table_names_rejected():
    tables = parse_manifest(
        """[
          {"name": "t", "rootPath": "/a", "dataFileType": "NDJSON"},
          {"name": "t", "rootPath": "/b", "dataFileType": "NDJSON"}
        ]"""
    )
    with pytest.raises(IllegalArgumentError) as excinfo:
        index_tables(tables)
    assert excinfo.value.context["duplicate_table_name"] == "t"
    assert "duplicate_table_name=t" in str(excinfo.value)


def test_serialize_is_strict_json_sorted_by_name():
    tables = [
        LogicalTable(name="zeta", root_path="/z", data_file_type=DataFileType.NDJSON),
        LogicalTable(
            name="alpha",
            root_path="/a",
            data_file_type=DataFileType.NDJSON,
            partition_definition=PartitionDefinition(
                filter_regex=r"(\d+)\.json$", filter_partitions=("n",)
            ),
        ),
    ]
    text = serialize_manifest(tables)

    data = json.loads(text)
    assert [entry["name"] for entry in data] == ["alpha", "zeta"]
    assert parse_manifest(text) == sorted(tables)


def test_read_manifest_from_store(store, put):
    put(
        "/user/stor/logs/object-tables.json",
        '[{"name": "events", "rootPath": "/user/stor/logs/events", "dataFileType": "NDJSON"}]',
    )
    tables = read_manifest(store, "/user/stor/logs/object-tables.json")
    assert list(tables) == ["events"]
    assert tables["events"].root_path == "/user/stor/logs/events"


def test_read_manifest_missing_object(store):
    with pytest.raises(FileNotFoundError):
        read_manifest(store, "/nowhere/object-tables.json")
