"""Process-wide broker store: loaded once, saved after every mutation."""

from __future__ import annotations

import threading
from typing import Optional

from ledger_core.config import get_settings
from ledger_core.storage import JsonFileStorage, Storage
from ledger_core.store import LedgerStore

_store: Optional[LedgerStore] = None
_init_lock = threading.Lock()


def _load(storage: Optional[Storage]) -> LedgerStore:
    return LedgerStore.load_or_default(storage or JsonFileStorage(get_settings().storage_path))


def init_store(storage: Optional[Storage] = None) -> LedgerStore:
    global _store
    with _init_lock:
        _store = _load(storage)
        return _store


def get_store() -> LedgerStore:
    global _store
    with _init_lock:
        if _store is None:
            _store = _load(None)
        return _store
