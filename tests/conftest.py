"""
Pytest configuration and shared fixtures for the ledger tests.
"""
import sys
from datetime import date
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ledger_core.models import BrokerProfile, DailyEntry  # noqa: E402
from ledger_core.storage import MemoryStorage  # noqa: E402
from ledger_core.store import LedgerStore  # noqa: E402


def make_entry(day: str, **counters) -> DailyEntry:
    return DailyEntry(date=date.fromisoformat(day), **counters)


def make_profile(name: str = "Ana", initial_leads: int = 100, goal=None, entries=()) -> BrokerProfile:
    return BrokerProfile(broker_name=name, initial_leads=initial_leads, monthly_sales_goal=goal, daily_entries=tuple(entries))


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> LedgerStore:
    return LedgerStore.load_or_default(storage)


@pytest.fixture
def ana() -> BrokerProfile:
    """Two days in January; the second carries repique leads."""
    return make_profile(
        entries=[
            make_entry("2026-01-06", new_leads=5, repique_leads=3, signed_leads=2),
            make_entry("2026-01-05", new_leads=10, discarded_leads=2, signed_leads=1),
        ]
    )
