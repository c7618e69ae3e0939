from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ledger_core.storage import JsonFileStorage
from ledger_core.store import LedgerStore


def test_missing_file_loads_empty(tmp_path: Path):
    assert JsonFileStorage(tmp_path / "brokers.json").load() == []


def test_corrupt_or_non_list_file_loads_empty(tmp_path: Path):
    path = tmp_path / "brokers.json"
    path.write_text("{oops", encoding="utf-8")
    assert JsonFileStorage(path).load() == []

    path.write_text(json.dumps({"brokerName": "Ana"}), encoding="utf-8")
    assert JsonFileStorage(path).load() == []


def test_every_mutation_rewrites_whole_document(tmp_path: Path):
    path = tmp_path / "nested" / "brokers.json"
    store = LedgerStore.load_or_default(JsonFileStorage(path))
    store.add("João", 12)
    store.add("Ana", 3)
    store.delete("joão")

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved == [{"brokerName": "Ana", "initialLeads": 3, "dailyEntries": []}]

    reloaded = LedgerStore.load_or_default(JsonFileStorage(path))
    assert reloaded.names() == ["Ana"]


def test_concurrent_adds_are_all_saved(tmp_path: Path):
    path = tmp_path / "brokers.json"
    store = LedgerStore.load_or_default(JsonFileStorage(path))

    def add_many(worker: int) -> None:
        for i in range(25):
            store.add(f"broker-{worker}-{i}", i)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(add_many, range(8)))

    assert len(store) == 200
    assert len(json.loads(path.read_text(encoding="utf-8"))) == 200
    assert list(tmp_path.glob("*.tmp")) == []
