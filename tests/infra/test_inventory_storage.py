from __future__ import annotations

import json
import sqlite3
from contextlib import closing

import pytest

from anbaryar.core.models import Drug
from anbaryar.infra.errors import StorageWriteError
from anbaryar.infra.sqlite_config import configure_connection
from anbaryar.infra.storage import DRUGS_KEY, InventoryStorage


def _raw_put(storage: InventoryStorage, key: str, value: str) -> None:
    with closing(storage._connect()) as conn, conn:
        conn.execute("INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)", (key, value))


def test_configure_connection_sets_row_factory_and_timeout() -> None:
    conn = configure_connection(sqlite3.connect(":memory:"))
    try:
        assert conn.row_factory is sqlite3.Row
        assert conn.execute("PRAGMA busy_timeout;").fetchone()[0] == 5000
    finally:
        conn.close()


def test_save_and_load_round_trip(storage: InventoryStorage, make_drug) -> None:
    drugs = [make_drug("A1").with_physical_qty(90, notes="ok"), make_drug("B2", "زینک", 5)]
    storage.save_drugs(drugs)
    assert storage.load_drugs() == drugs


def test_save_drops_duplicate_ids(storage: InventoryStorage) -> None:
    first = Drug(id="same", code="A1", name="Aspirin", system_qty=1)
    second = Drug(id="same", code="B2", name="Zinc", system_qty=2)
    storage.save_drugs([first, second])
    assert storage.load_drugs() == [first]


def test_load_from_empty_store(storage: InventoryStorage) -> None:
    assert storage.load_drugs() == []
    assert storage.load_last_import_date() is None
    assert storage.load_settings() == {}


def test_load_corrupt_json_returns_empty(storage: InventoryStorage) -> None:
    _raw_put(storage, DRUGS_KEY, "{not json")
    assert storage.load_drugs() == []


def test_load_skips_malformed_entries(storage: InventoryStorage) -> None:
    payload = [
        {"id": "1", "code": "A1", "name": "Aspirin", "systemQty": 10},
        {"code": "missing id"},
        {"id": "3", "code": "C3", "name": "Bad", "systemQty": "many"},
        "not an object",
    ]
    _raw_put(storage, DRUGS_KEY, json.dumps(payload))
    assert [drug.id for drug in storage.load_drugs()] == ["1"]


def test_last_import_and_settings(storage: InventoryStorage) -> None:
    storage.save_last_import_date("2024-03-20T08:30:00.000Z")
    storage.save_settings({"theme": "dark", "rtl": True})
    assert storage.load_last_import_date() == "2024-03-20T08:30:00.000Z"
    assert storage.load_settings() == {"theme": "dark", "rtl": True}


def test_clear_all_removes_every_key(storage: InventoryStorage, make_drug) -> None:
    storage.save_drugs([make_drug()])
    storage.save_last_import_date("2024-03-20T08:30:00.000Z")
    storage.clear_all()
    assert storage.load_drugs() == []
    assert storage.load_last_import_date() is None


def test_save_failure_raises_storage_error(tmp_path, make_drug) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    storage = InventoryStorage(blocker / "db.sqlite3")
    with pytest.raises(StorageWriteError) as excinfo:
        storage.save_drugs([make_drug()])
    assert str(excinfo.value) == "خطا در ذخیره اطلاعات داروها"


def test_load_failure_returns_empty(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    storage = InventoryStorage(blocker / "db.sqlite3")
    assert storage.load_drugs() == []
    storage.clear_all()
