"""Tests for the logical table registry and its cache."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from object_tables.catalog import SchemaTableName, TableRegistry
from object_tables.config import ConnectorConfig
from object_tables.exceptions import SchemaNotFoundError, TableNotFoundError

from conftest import RecordingStore

MANIFEST_PATH = "/user/stor/logs/object-tables.json"
MANIFEST = """[
  {"name": "requests", "rootPath": "~~/stor/logs/requests", "dataFileType": "NDJSON"},
  {"name": "errors", "rootPath": "~~/stor/logs/errors", "dataFileType": "NDJSON"}
]"""


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class BlockingManifestStore(RecordingStore):
    """Holds every manifest read until released."""

    def __init__(self, root):
        super().__init__(root)
        self.started = threading.Event()
        self.release = threading.Event()
        self.manifest_loads = 0

    def get(self, path, byte_range=None):
        if path == MANIFEST_PATH:
            with self._lock:
                self.manifest_loads += 1
            self.started.set()
            self.release.wait(10)
        return super().get(path, byte_range)


def wait_for_waiters(caplog, count, timeout=10):
    """Wait until ``count`` callers are blocked on an in-flight manifest load."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        waiting = [
            record
            for record in list(caplog.records)
            if record.getMessage().startswith("Waiting for in-flight manifest load")
        ]
        if len(waiting) >= count:
            return True
        time.sleep(0.01)
    return False


def manifest_reads(store):
    return [path for path, _ in store.reads if path == MANIFEST_PATH]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(store, put, clock):
    put(MANIFEST_PATH, MANIFEST)
    config = ConnectorConfig(home_directory="/user", table_cache_ttl_seconds=60)
    return TableRegistry(store, {"logs": "/user/stor/logs"}, config, time_fn=clock)


def test_get_table(registry):
    table = registry.get_table("logs", "requests")
    assert table.name == "requests"
    assert table.root_path == "/user/stor/logs/requests"


def test_list_tables_sorted(registry):
    assert registry.list_tables("logs") == [
        SchemaTableName("logs", "errors"),
        SchemaTableName("logs", "requests"),
    ]
    assert str(registry.list_tables("logs")[0]) == "logs.errors"
    assert registry.list_schemas() == ["logs"]


def test_tables_are_read_only(registry):
    tables = registry.tables_for_schema("logs")
    with pytest.raises(TypeError):
        tables["new"] = None


def test_unknown_schema(registry):
    with pytest.raises(SchemaNotFoundError) as excinfo:
        registry.get_table("nope", "requests")
    assert excinfo.value.schema_name == "nope"
    assert "[nope]" in str(excinfo.value)


def test_unknown_table(registry):
    with pytest.raises(TableNotFoundError) as excinfo:
        registry.get_table("logs", "nope")
    assert excinfo.value.table_name == "nope"


def test_missing_manifest_is_schema_not_found(store):
    registry = TableRegistry(store, {"empty": "/user/stor/empty"})
    with pytest.raises(SchemaNotFoundError) as excinfo:
        registry.tables_for_schema("empty")
    assert excinfo.value.context["manifest_path"] == "/user/stor/empty/object-tables.json"


def test_cache_hit_within_ttl(registry, store, clock):
    registry.get_table("logs", "requests")
    clock.now += 59
    registry.get_table("logs", "errors")
    assert len(manifest_reads(store)) == 1


def test_reload_after_ttl(registry, store, put, clock):
    registry.get_table("logs", "requests")
    put(MANIFEST_PATH, '[{"name": "other", "rootPath": "/o", "dataFileType": "NDJSON"}]')
    clock.now += 61

    assert [name.table_name for name in registry.list_tables("logs")] == ["other"]
    assert len(manifest_reads(store)) == 2


def test_invalidate(registry, store):
    registry.get_table("logs", "requests")
    registry.invalidate("logs")
    registry.get_table("logs", "requests")
    registry.invalidate()
    registry.get_table("logs", "requests")
    assert len(manifest_reads(store)) == 3


def test_failed_load_is_not_cached(store, put):
    registry = TableRegistry(store, {"logs": "/user/stor/logs"})
    with pytest.raises(SchemaNotFoundError):
        registry.get_table("logs", "requests")

    put(MANIFEST_PATH, MANIFEST)
    assert registry.get_table("logs", "requests").name == "requests"


def test_concurrent_misses_share_one_load(store_root, put, caplog):
    caplog.set_level(logging.DEBUG, logger="object_tables.catalog.registry")
    put(MANIFEST_PATH, MANIFEST)
    store = BlockingManifestStore(str(store_root))
    registry = TableRegistry(store, {"logs": "/user/stor/logs"})

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(registry.get_table, "logs", "requests") for _ in range(8)]
        assert store.started.wait(10)
        assert wait_for_waiters(caplog, 7)
        store.release.set()
        results = [future.result(timeout=10) for future in futures]

    assert store.manifest_loads == 1
    assert all(result is results[0] for result in results)


def test_concurrent_misses_share_one_failure(store_root, caplog):
    caplog.set_level(logging.DEBUG, logger="object_tables.catalog.registry")
    store = BlockingManifestStore(str(store_root))
    registry = TableRegistry(store, {"logs": "/user/stor/logs"})

    with ThreadPoolExecutor(max_workers=4) as pool:
        futures = [pool.submit(registry.get_table, "logs", "requests") for _ in range(4)]
        assert store.started.wait(10)
        assert wait_for_waiters(caplog, 3)
        store.release.set()
        for future in futures:
            with pytest.raises(SchemaNotFoundError):
                future.result(timeout=10)

    assert store.manifest_loads == 1
