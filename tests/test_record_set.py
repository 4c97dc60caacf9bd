"""Tests for record sets and Arrow materialization."""

from datetime import date, datetime
from decimal import Decimal

import pyarrow as pa
import pytest

from object_tables.catalog import Column, DataFileType, TableRegistry
from object_tables.config import ConnectorConfig
from object_tables.exceptions import FileFormatError, TableNotFoundError
from object_tables.handles import Split
from object_tables.record import JsonRecordSet, RecordSetProvider, arrow_schema
from object_tables.types import ColumnType, TemporalFormat

COLUMNS = [
    Column(name="id", type=ColumnType.BIGINT),
    Column(name="ok", type=ColumnType.BOOLEAN),
    Column(name="price", type=ColumnType.DECIMAL),
    Column(name="day", type=ColumnType.DATE),
    Column(name="at", type=ColumnType.TIMESTAMP, format=TemporalFormat.EPOCH_SECONDS),
    Column(name="tags", type=ColumnType.MAP_STRING_STRING),
    Column(name="doc", type=ColumnType.JSON),
]


def record_set(store, path, columns=COLUMNS, data_file_type=DataFileType.NDJSON):
    return JsonRecordSet(store, path, data_file_type, columns)


def test_arrow_schema():
    schema = arrow_schema(COLUMNS)
    assert schema.names == ["id", "ok", "price", "day", "at", "tags", "doc"]
    assert schema.field("id").type == pa.int64()
    assert schema.field("price").type == pa.decimal128(38, 12)
    assert schema.field("day").type == pa.date32()
    assert schema.field("at").type == pa.timestamp("ms")
    assert schema.field("tags").type == pa.map_(pa.string(), pa.string())
    assert schema.field("doc").type == pa.string()


def test_read_all(store, put_records):
    put_records(
        "/d/a.json",
        [
            {
                "id": 1,
                "ok": True,
                "price": 12.5,
                "day": "2017-06-01",
                "at": 1496275200,
                "tags": {"host": "web-1"},
                "doc": {"k": [1, 2]},
            },
            {"id": 2},
        ],
    )

    table = record_set(store, "/d/a.json").read_all()

    assert table.num_rows == 2
    assert table.schema == arrow_schema(COLUMNS)
    first = table.slice(0, 1).to_pylist()[0]
    assert first["id"] == 1
    assert first["ok"] is True
    assert first["price"] == Decimal("12.5")
    assert first["day"] == date(2017, 6, 1)
    assert first["at"] == datetime(2017, 6, 1)
    assert first["tags"] == [("host", "web-1")]
    assert first["doc"] == '{"k":[1,2]}'
    second = table.slice(1, 1).to_pylist()[0]
    assert second == {
        "id": 2,
        "ok": None,
        "price": None,
        "day": None,
        "at": None,
        "tags": None,
        "doc": None,
    }


def test_iter_batches(store, put_records):
    put_records("/d/a.json", [{"id": n} for n in range(5)])
    columns = [Column(name="id", type=ColumnType.BIGINT)]

    batches = list(record_set(store, "/d/a.json", columns).iter_batches(batch_size=2))

    assert [batch.num_rows for batch in batches] == [2, 2, 1]
    assert [value for batch in batches for value in batch.column(0).to_pylist()] == [
        0,
        1,
        2,
        3,
        4,
    ]


def test_empty_object_reads_as_empty_table(store, put):
    put("/d/a.json", "")
    columns = [Column(name="id", type=ColumnType.BIGINT)]
    rs = record_set(store, "/d/a.json", columns)
    assert list(rs.iter_batches()) == []
    table = rs.read_all()
    assert table.num_rows == 0
    assert table.schema.names == ["id"]


def test_csv_is_rejected(store):
    with pytest.raises(FileFormatError):
        record_set(store, "/d/a.csv", data_file_type=DataFileType.CSV)


def test_decimal_out_of_range(store, put):
    put("/d/a.json", '{"price": 1' + "0" * 30 + "}\n")
    columns = [Column(name="price", type=ColumnType.DECIMAL)]
    with pytest.raises(FileFormatError) as excinfo:
        record_set(store, "/d/a.json", columns).read_all()
    assert excinfo.value.context["column"] == "price"
    assert excinfo.value.context["line"] == 1


def test_column_types(store):
    rs = record_set(store, "/d/a.json")
    assert rs.column_types[:3] == [ColumnType.BIGINT, ColumnType.BOOLEAN, ColumnType.DECIMAL]


def test_provider_uses_split_and_table(store, put, put_records):
    put(
        "/user/stor/object-tables.json",
        '[{"name": "events", "rootPath": "/user/stor/events", "dataFileType": "NDJSON",'
        ' "partitionDefinition": {"directoryFilterRegex": "/events/([^/]+)/",'
        ' "directoryFilterPartitions": ["server"]}}]',
    )
    put_records("/user/stor/events/server-1/a.json", [{"id": 7}])
    registry = TableRegistry(store, {"web": "/user/stor"}, ConnectorConfig())
    table = registry.get_table("web", "events")
    columns = [Column(name="id", type=ColumnType.BIGINT)]
    columns += table.partition_definition.directory_partitions_as_columns()
    split = Split(
        schema_name="web",
        table_name="events",
        object_path="/user/stor/events/server-1/a.json",
        data_file_type=DataFileType.NDJSON,
        content_length=10,
    )

    rs = RecordSetProvider(store, registry).get_record_set(split, columns)

    assert rs.total_bytes == 10
    assert rs.read_all().to_pylist() == [{"id": 7, "server": "server-1"}]


def test_provider_unknown_table(store, put):
    put("/user/stor/object-tables.json", "[]")
    registry = TableRegistry(store, {"web": "/user/stor"}, ConnectorConfig())
    split = Split(
        schema_name="web",
        table_name="missing",
        object_path="/user/stor/a.json",
        data_file_type=DataFileType.NDJSON,
    )
    with pytest.raises(TableNotFoundError):
        RecordSetProvider(store, registry).get_record_set(split, [])
