"""Shared fixtures: a local object store rooted in a temporary directory."""

import gzip
import json
import threading
from pathlib import Path
from typing import List, Tuple, Union

import pytest

from object_tables.config import Config, ConnectorConfig, StoreConfig
from object_tables.storage.local import LocalObjectStore


class RecordingStore(LocalObjectStore):
    """Local store that records every directory listing and object read."""

    def __init__(self, root: str):
        super().__init__(root)
        self._lock = threading.Lock()
        self.listed: List[str] = []
        self.reads: List[Tuple[str, object]] = []

    def list_directory(self, path):
        with self._lock:
            self.listed.append(path)
        return super().list_directory(path)

    def get(self, path, byte_range=None):
        with self._lock:
            self.reads.append((path, byte_range))
        return super().get(path, byte_range)


def json_lines(records) -> str:
    return "".join(json.dumps(record) + "\n" for record in records)


@pytest.fixture
def store_root(tmp_path) -> Path:
    root = tmp_path / "store"
    root.mkdir()
    return root


@pytest.fixture
def store(store_root) -> RecordingStore:
    return RecordingStore(str(store_root))


@pytest.fixture
def put(store_root):
    """Write an object into the store, creating parent directories."""

    def _put(path: str, data: Union[str, bytes]) -> Path:
        target = store_root / path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            data = data.encode("utf-8")
        target.write_bytes(data)
        return target

    return _put


@pytest.fixture
def put_records(put):
    """Write records as newline-delimited JSON."""

    def _put_records(path: str, records) -> Path:
        return put(path, json_lines(records))

    return _put_records


LOGS_MANIFEST = """
// tables of the logs schema
[
  {
    name: "events",
    rootPath: "~~/stor/logs/events",
    dataFileType: "NDJSON",
    partitionDefinition: {
      directoryFilterRegex: "^/.+/events/(server-\\\\d+)/.*$",
      directoryFilterPartitions: ["server"],
    },
  },
  {
    name: "metrics",
    rootPath: "/user/stor/logs/metrics",
    dataFileType: "TELEGRAF_NDJSON",
  },
]
"""


@pytest.fixture
def logs_config(store_root) -> Config:
    return Config(
        store=StoreConfig(type="local", root=str(store_root)),
        schemas={"logs": "/user/stor/logs"},
        connector=ConnectorConfig(home_directory="/user"),
    )


@pytest.fixture
def logs_dataset(put, logs_config) -> Config:
    """A schema with a partitioned JSON table and a Telegraf table."""
    put("/user/stor/logs/object-tables.json", LOGS_MANIFEST)
    put(
        "/user/stor/logs/events/server-1/a.json",
        json_lines(
            [
                {"id": 1, "level": "info", "latency": 1.5},
                {"id": 2, "level": "warn", "latency": 2.25},
            ]
        ),
    )
    put(
        "/user/stor/logs/events/server-2/b.json.gz",
        gzip.compress(json_lines([{"id": 3, "level": "error", "latency": 0.5}]).encode()),
    )
    put(
        "/user/stor/logs/metrics/cpu.telegraf.json",
        json_lines(
            [
                {
                    "fields": {"usage_idle": 97.5},
                    "name": "cpu",
                    "tags": {"host": "web-1"},
                    "timestamp": 1496275200,
                }
            ]
        ),
    )
    return logs_config
