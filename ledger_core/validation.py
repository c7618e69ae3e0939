from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional

from ledger_core.errors import ValidationError
from ledger_core.models import CAMEL_NAMES, FIELD_LABELS, FUNNEL_FIELDS, DailyEntry, Month

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_count(value: object, field: str) -> int:
    """Parse a non-negative integer counter. Empty input is 0; anything else invalid is rejected."""
    if _is_blank(value):
        return 0
    label = FIELD_LABELS.get(field, field)
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a whole number.", field=field)
    if isinstance(value, str):
        text = value.strip()
        if not re.fullmatch(r"[+-]?\d+", text):
            raise ValidationError(f"{label} must be a whole number.", field=field)
        number = int(text)
    elif isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{label} must be a whole number.", field=field)
        number = int(value)
    else:
        raise ValidationError(f"{label} must be a whole number.", field=field)
    if number < 0:
        raise ValidationError(f"{label} cannot be negative.", field=field)
    return number


def parse_goal(value: object) -> Optional[int]:
    if _is_blank(value):
        return None
    return parse_count(value, "monthly_sales_goal")


def parse_name(value: object) -> str:
    name = str(value or "").strip()
    if not name:
        raise ValidationError("Broker name is required.", field="broker_name")
    return name


def parse_date(value: object, field: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD).", field=field) from None


def parse_month(value: object) -> Month:
    if isinstance(value, Month):
        return value
    if isinstance(value, date):
        return Month.of(value)
    match = _MONTH_RE.match(str(value or "").strip())
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise ValidationError(f"Invalid month: {value!r} (expected YYYY-MM).", field="month")
    return Month(int(match.group(1)), int(match.group(2)))


def _lookup(raw: Mapping[str, Any], name: str) -> object:
    if name in raw:
        return raw[name]
    return raw.get(CAMEL_NAMES[name])


def normalize_entry(raw: Mapping[str, Any], *, day: object = None) -> DailyEntry:
    """Validate a form/API payload (snake_case or camelCase keys) into a DailyEntry."""
    entry_date = parse_date(day if day is not None else raw.get("date"))
    counters = {name: parse_count(_lookup(raw, name), name) for name in FUNNEL_FIELDS}
    return DailyEntry(date=entry_date, **counters)


def normalize_overrides(raw: Mapping[str, Any]) -> Dict[str, int]:
    """Counters explicitly filled in for a bulk edit; blank fields are left out."""
    out: Dict[str, int] = {}
    for name in FUNNEL_FIELDS:
        value = _lookup(raw, name)
        if _is_blank(value):
            continue
        out[name] = parse_count(value, name)
    return out
