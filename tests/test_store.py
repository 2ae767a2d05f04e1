"""Tests for the persistent store backings."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from doorlock.config import DoorLockConfig
from doorlock.store import JsonFileStore, MemoryStore, StoreError


def build_store(tmp_path: Path) -> JsonFileStore:
    cfg = DoorLockConfig(
        data_path=tmp_path,
        state_file="state.json",
        log_file="log.txt",
    )
    return JsonFileStore(cfg)


def test_memory_store_roundtrip() -> None:
    store = MemoryStore()
    assert store.get("missing") is None
    store.set("k", "v")
    assert store.get("k") == "v"
    store.remove("k")
    store.remove("k")
    assert store.get("k") is None


def test_file_store_persists(tmp_path: Path) -> None:
    store = build_store(tmp_path)
    store.set("doorLock_unlockState", "true")
    new_store = build_store(tmp_path)
    assert new_store.get("doorLock_unlockState") == "true"
    data = json.loads((tmp_path / "state.json").read_text())
    assert data == {"doorLock_unlockState": "true"}


def test_file_store_remove(tmp_path: Path) -> None:
    store = build_store(tmp_path)
    store.set("a", "1")
    store.set("b", "2")
    store.remove("a")
    assert build_store(tmp_path).as_dict() == {"b": "2"}


def test_corrupt_file_loads_empty(tmp_path: Path) -> None:
    (tmp_path / "state.json").write_text("{not json")
    store = build_store(tmp_path)
    assert store.as_dict() == {}
    store.set("a", "1")
    assert build_store(tmp_path).get("a") == "1"


def test_non_string_values_are_dropped(tmp_path: Path) -> None:
    (tmp_path / "state.json").write_text(json.dumps({"a": 5, "b": "ok", "c": None}))
    assert build_store(tmp_path).as_dict() == {"b": "ok"}


def test_reload_picks_up_external_changes(tmp_path: Path) -> None:
    store = build_store(tmp_path)
    other = build_store(tmp_path)
    other.set("a", "1")
    assert store.get("a") is None
    store.reload()
    assert store.get("a") == "1"


def test_write_failure_raises_store_error(tmp_path: Path) -> None:
    store = build_store(tmp_path)
    store.path = tmp_path / "missing-dir" / "state.json"
    with pytest.raises(StoreError):
        store.set("a", "1")
