"""Tests for the logical table model."""

import pytest

from object_tables.catalog import (
    Column,
    DataFileType,
    LogicalTable,
    PartitionColumn,
    PartitionDefinition,
)
from object_tables.exceptions import IllegalArgumentError
from object_tables.types import ColumnType, TemporalFormat, parse_type

DIR_REGEX = r"^/.+/stor/dir/(.+)/.*$"
FILE_REGEX = r"^/.+/stor/dir/.+/analytics-(.+)-(.+)-(.+)\.log\..+$"


@pytest.fixture
def partition_definition():
    return PartitionDefinition(
        directory_filter_regex=DIR_REGEX,
        filter_regex=FILE_REGEX,
        directory_filter_partitions=("server",),
        filter_partitions=("year", "month", "day"),
    )


def test_column_round_trip():
    column = Column(
        name="ts",
        type=ColumnType.TIMESTAMP,
        comment="event time",
        format=TemporalFormat.EPOCH_SECONDS,
    )
    assert Column.from_dict(column.to_dict()) == column


def test_column_aliases_and_type_names():
    column = Column.from_dict(
        {"column": "ts", "displayName": "Event time", "type": "timestamp epoch seconds"}
    )
    assert column.name == "ts"
    assert column.comment == "Event time"
    assert column.type == ColumnType.TIMESTAMP
    assert column.format == TemporalFormat.EPOCH_SECONDS


def test_column_requires_name():
    with pytest.raises(IllegalArgumentError):
        Column.from_dict({"type": "varchar"})


def test_parse_type_names():
    assert parse_type("VARCHAR") == (ColumnType.VARCHAR, None)
    assert parse_type("map(varchar, double)") == (ColumnType.MAP_STRING_DOUBLE, None)
    assert parse_type("string[string,string]") == (ColumnType.MAP_STRING_STRING, None)
    with pytest.raises(IllegalArgumentError):
        parse_type("uuid")
    with pytest.raises(IllegalArgumentError):
        parse_type("  ")


def test_partition_definition_round_trip(partition_definition):
    restored = PartitionDefinition.from_dict(partition_definition.to_dict())
    assert restored == partition_definition
    assert restored.filter_pattern.pattern == FILE_REGEX


def test_partition_definition_normalizes_values():
    definition = PartitionDefinition(
        directory_filter_regex="  ",
        filter_regex=r"(\d+)\.json$",
        filter_partitions=("a", "b", "a"),
    )
    assert definition.directory_filter_regex is None
    assert definition.directory_pattern is None
    assert definition.filter_partitions == ("a", "b")
    assert not definition.is_empty()
    assert PartitionDefinition().is_empty()


def test_partition_definition_rejects_bad_regex():
    with pytest.raises(IllegalArgumentError):
        PartitionDefinition(filter_regex="([unclosed")


def test_partition_definition_aliases():
    definition = PartitionDefinition.from_dict(
        {"directoryFilterRegex": DIR_REGEX, "directoryPartitions": ["server"], "partitions": []}
    )
    assert definition.directory_filter_partitions == ("server",)
    assert definition.filter_partitions == ()


def test_partition_columns_are_hidden_varchar(partition_definition):
    columns = partition_definition.file_partitions_as_columns()
    assert [c.name for c in columns] == ["year", "month", "day"]
    assert [c.index for c in columns] == [0, 1, 2]
    assert all(isinstance(c, PartitionColumn) for c in columns)
    assert all(c.hidden and c.type == ColumnType.VARCHAR for c in columns)
    assert columns[1].comment == f"file partition match [{FILE_REGEX}] index [1]"

    server = partition_definition.directory_partitions_as_columns()[0]
    assert server.comment == f"directory partition match [{DIR_REGEX}] index [0]"


def test_partition_columns_need_a_regex():
    definition = PartitionDefinition(filter_partitions=("year",))
    assert definition.file_partitions_as_columns() == []


def test_partition_values(partition_definition):
    values = partition_definition.partition_values(
        "/user/stor/dir/server-1012/analytics-1998-04-01.log.gz"
    )
    assert values == {"server": "server-1012", "year": "1998", "month": "04", "day": "01"}

    unmatched = partition_definition.partition_values("/user/stor/other/file.json")
    assert unmatched == {"server": None, "year": None, "month": None, "day": None}


def test_partition_values_index_out_of_range():
    definition = PartitionDefinition(filter_regex=r"(\d+)\.json$", filter_partitions=("a", "b"))
    with pytest.raises(IllegalArgumentError) as excinfo:
        definition.partition_values("/x/12.json")
    assert excinfo.value.context["group_count"] == 1


def test_logical_table_round_trip(partition_definition):
    table = LogicalTable(
        name="analytics",
        root_path="/user/stor/dir/",
        data_file_type=DataFileType.NDJSON,
        partition_definition=partition_definition,
        columns=[Column(name="id", type=ColumnType.BIGINT)],
    )
    assert table.root_path == "/user/stor/dir"
    assert isinstance(table.columns, tuple)
    assert LogicalTable.from_dict(table.to_dict()) == table


def test_logical_table_from_manifest_entry():
    table = LogicalTable.from_dict(
        {
            "name": "metrics",
            "rootPath": "~~/stor/metrics",
            "dataFileType": "TELEGRAF_NDJSON",
            "partitioning": {},
        },
        home_directory="/user/",
    )
    assert table.root_path == "/user/stor/metrics"
    assert table.data_file_type == DataFileType.TELEGRAF_NDJSON
    assert table.partition_definition is None
    assert table.columns is None
    assert table.partition_columns() == []


def test_logical_table_validation():
    with pytest.raises(IllegalArgumentError):
        LogicalTable.from_dict({"name": "t", "rootPath": "/a", "dataFileType": "PARQUET"})
    with pytest.raises(IllegalArgumentError):
        LogicalTable.from_dict({"name": " ", "rootPath": "/a", "dataFileType": "NDJSON"})
    with pytest.raises(IllegalArgumentError):
        LogicalTable.from_dict({"name": "t", "dataFileType": "NDJSON"})
    with pytest.raises(IllegalArgumentError):
        LogicalTable.from_dict(
            {"name": "t", "rootPath": "/a", "dataFileType": "NDJSON", "columnConfig": {}}
        )


def test_partition_columns_directory_first(partition_definition):
    table = LogicalTable(
        name="analytics",
        root_path="/user/stor/dir",
        data_file_type=DataFileType.NDJSON,
        partition_definition=partition_definition,
    )
    assert [c.name for c in table.partition_columns()] == ["server", "year", "month", "day"]


def test_tables_sort_by_name():
    b = LogicalTable(name="b", root_path="/b", data_file_type=DataFileType.NDJSON)
    a = LogicalTable(name="a", root_path="/a", data_file_type=DataFileType.NDJSON)
    assert sorted([b, a]) == [a, b]


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/logs/a.json", DataFileType.NDJSON),
        ("/logs/a.ndjson.gz", DataFileType.NDJSON),
        ("/metrics/cpu.telegraf.json", DataFileType.TELEGRAF_NDJSON),
        ("/metrics/cpu.telegraf.json.snappy", DataFileType.TELEGRAF_NDJSON),
        ("/data/rows.csv", DataFileType.CSV),
        ("/data/notes.txt", None),
        ("/data/archive.gz", None),
    ],
)
def test_data_file_type_by_path(path, expected):
    assert DataFileType.value_by_path(path) == expected


def test_data_file_type_by_media_type():
    assert DataFileType.value_by_media_type("application/json; charset=utf-8") == DataFileType.NDJSON
    assert DataFileType.value_by_media_type("text/csv") == DataFileType.CSV
    assert DataFileType.value_by_media_type("text/plain") is None
    assert DataFileType.value_by_media_type(None) is None
    assert DataFileType.NDJSON.default_extension == "ndjson"
