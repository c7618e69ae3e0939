from __future__ import annotations

import json
import logging
import math
import threading
from dataclasses import replace
from datetime import date, timedelta
from numbers import Number
from typing import Any, Callable, Dict, Iterable, List, Optional

from ledger_core.errors import DuplicateName, InvalidFormat, ValidationError
from ledger_core.models import FUNNEL_FIELDS, BrokerProfile, DailyEntry
from ledger_core.storage import Records, Storage
from ledger_core.validation import parse_count, parse_goal, parse_name

logger = logging.getLogger(__name__)

SaveHook = Callable[[Records], None]

INVALID_BACKUP_MESSAGE = "The backup file is invalid or corrupted. Nothing was restored."


def _is_number(value: object) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool) and math.isfinite(value)


def parse_collection(data: object) -> List[BrokerProfile]:
    """Validate a whole broker collection (restore / import / persisted state)."""
    if not isinstance(data, list):
        raise InvalidFormat(INVALID_BACKUP_MESSAGE)
    for item in data:
        if not (
            isinstance(item, dict)
            and isinstance(item.get("brokerName"), str)
            and _is_number(item.get("initialLeads"))
            and isinstance(item.get("dailyEntries"), list)
        ):
            raise InvalidFormat(INVALID_BACKUP_MESSAGE)
    try:
        profiles = [BrokerProfile.from_dict(item) for item in data]
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise InvalidFormat(INVALID_BACKUP_MESSAGE) from exc
    seen = set()
    for profile in profiles:
        if profile.key in seen:
            raise InvalidFormat(f"The backup lists broker '{profile.broker_name}' more than once.")
        seen.add(profile.key)
    return profiles


class LedgerStore:
    """All broker profiles, keyed case-insensitively by name.

    Each public mutation runs under the store lock and either applies fully
    (saved first, then swapped in memory) or raises before touching anything.
    Operations on brokers or dates that no longer exist do nothing.
    """

    def __init__(self, profiles: Iterable[BrokerProfile] = (), *, on_change: Optional[SaveHook] = None):
        self._profiles: List[BrokerProfile] = list(profiles)
        self._on_change = on_change
        self._lock = threading.RLock()

    @classmethod
    def load_or_default(cls, storage: Storage) -> "LedgerStore":
        records = storage.load()
        try:
            profiles = parse_collection(records)
        except InvalidFormat:
            logger.warning("Saved broker data is malformed; starting with an empty store")
            profiles = []
        logger.info("Loaded %d broker(s)", len(profiles))
        return cls(profiles, on_change=storage.save)

    # ---------------- Queries ----------------
    def brokers(self) -> List[BrokerProfile]:
        return list(self._profiles)

    def names(self) -> List[str]:
        return [p.broker_name for p in self._profiles]

    def get(self, name: str) -> Optional[BrokerProfile]:
        profiles = self._profiles
        idx = self._index(name, profiles)
        return profiles[idx] if idx is not None else None

    def to_records(self) -> Records:
        return [p.to_dict() for p in self._profiles]

    def __len__(self) -> int:
        return len(self._profiles)

    def _index(self, name: str, profiles: Optional[List[BrokerProfile]] = None) -> Optional[int]:
        key = str(name).strip().casefold()
        for idx, profile in enumerate(self._profiles if profiles is None else profiles):
            if profile.key == key:
                return idx
        return None

    def _commit(self, profiles: List[BrokerProfile]) -> None:
        # a failing save leaves the in-memory state untouched
        if self._on_change is not None:
            self._on_change([p.to_dict() for p in profiles])
        self._profiles = profiles

    # ---------------- Broker mutations ----------------
    def add(self, name: object, initial_leads: object, goal: object = None) -> BrokerProfile:
        broker_name = parse_name(name)
        leads = parse_count(initial_leads, "initial_leads")
        sales_goal = parse_goal(goal)
        with self._lock:
            if self._index(broker_name) is not None:
                raise DuplicateName(broker_name)
            profile = BrokerProfile(broker_name=broker_name, initial_leads=leads, monthly_sales_goal=sales_goal)
            self._commit(self._profiles + [profile])
        logger.info("Added broker %s", broker_name)
        return profile

    def update(self, old_name: str, new_name: object, initial_leads: object, goal: object = None) -> Optional[BrokerProfile]:
        broker_name = parse_name(new_name)
        leads = parse_count(initial_leads, "initial_leads")
        sales_goal = parse_goal(goal)
        with self._lock:
            idx = self._index(old_name)
            if idx is None:
                return None
            clash = self._index(broker_name)
            if clash is not None and clash != idx:
                raise DuplicateName(broker_name)
            updated = replace(
                self._profiles[idx], broker_name=broker_name, initial_leads=leads, monthly_sales_goal=sales_goal
            )
            self._replace_profile(idx, updated)
        logger.info("Updated broker %s -> %s", old_name, broker_name)
        return updated

    def delete(self, name: str) -> bool:
        with self._lock:
            idx = self._index(name)
            if idx is None:
                return False
            removed = self._profiles[idx]
            self._commit(self._profiles[:idx] + self._profiles[idx + 1 :])
        logger.info("Deleted broker %s with %d entries", removed.broker_name, len(removed.daily_entries))
        return True

    # ---------------- Entry mutations ----------------
    def _replace_profile(self, idx: int, profile: BrokerProfile) -> BrokerProfile:
        profiles = list(self._profiles)
        profiles[idx] = profile
        self._commit(profiles)
        return profile

    def upsert_entry(self, name: str, entry: DailyEntry) -> Optional[BrokerProfile]:
        with self._lock:
            idx = self._index(name)
            if idx is None:
                return None
            return self._replace_profile(idx, self._profiles[idx].with_entry(entry))

    def delete_entry(self, name: str, day: date) -> Optional[BrokerProfile]:
        with self._lock:
            idx = self._index(name)
            if idx is None or self._profiles[idx].entry_for(day) is None:
                return None
            return self._replace_profile(idx, self._profiles[idx].without_entry(day))

    def bulk_upsert(self, name: str, start: date, end: date, overrides: Dict[str, int]) -> Optional[BrokerProfile]:
        """Upsert one entry per day in [start, end]; unset counters keep the day's existing value or 0."""
        if start > end:
            raise ValidationError("Start date cannot be after end date.", field="start")
        with self._lock:
            idx = self._index(name)
            if idx is None:
                return None
            profile = self._profiles[idx]
            day = start
            while day <= end:
                existing = profile.entry_for(day) or DailyEntry(date=day)
                counters = {f: overrides.get(f, getattr(existing, f)) for f in FUNNEL_FIELDS}
                profile = profile.with_entry(DailyEntry(date=day, **counters))
                day += timedelta(days=1)
            profile = self._replace_profile(idx, profile)
        logger.info("Bulk-updated %s from %s to %s", profile.broker_name, start, end)
        return profile

    # ---------------- Whole-collection ----------------
    def restore(self, data: object) -> int:
        profiles = parse_collection(data)
        with self._lock:
            self._commit(profiles)
        logger.info("Restored %d broker(s) from backup", len(profiles))
        return len(profiles)

    def import_json(self, text: Any) -> int:
        try:
            if isinstance(text, bytes):
                text = text.decode("utf-8-sig")
            data = json.loads(text.lstrip("\ufeff") if isinstance(text, str) else text)
        except (TypeError, ValueError) as exc:
            raise InvalidFormat(INVALID_BACKUP_MESSAGE) from exc
        return self.restore(data)
