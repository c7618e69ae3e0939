from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

# Canonical counter order used by forms, history and the CSV report.
FUNNEL_FIELDS: Tuple[str, ...] = (
    "new_leads",
    "discarded_leads",
    "repique_leads",
    "local_visits",
    "contacting_leads",
    "in_progress_leads",
    "scheduled_leads",
    "negotiation_leads",
    "credit_analysis_leads",
    "approved_leads",
    "signed_leads",
)

CAMEL_NAMES: Dict[str, str] = {
    "new_leads": "newLeads",
    "discarded_leads": "discardedLeads",
    "repique_leads": "repiqueLeads",
    "local_visits": "localVisits",
    "contacting_leads": "contactingLeads",
    "in_progress_leads": "inProgressLeads",
    "scheduled_leads": "scheduledLeads",
    "negotiation_leads": "negotiationLeads",
    "credit_analysis_leads": "creditAnalysisLeads",
    "approved_leads": "approvedLeads",
    "signed_leads": "signedLeads",
}

FIELD_LABELS: Dict[str, str] = {
    "new_leads": "New Leads",
    "discarded_leads": "Discarded",
    "repique_leads": "Repique",
    "local_visits": "Local Visits",
    "contacting_leads": "Contacting",
    "in_progress_leads": "In Progress",
    "scheduled_leads": "Scheduled",
    "negotiation_leads": "Negotiation",
    "credit_analysis_leads": "Credit Analysis",
    "approved_leads": "Approved",
    "signed_leads": "Signed Contracts",
}


def _count(raw: Dict[str, Any], key: str) -> int:
    value = raw.get(key)
    if value is None or value == "":
        return 0
    return int(value)


@dataclass(frozen=True)
class DailyEntry:
    date: date
    new_leads: int = 0
    discarded_leads: int = 0
    repique_leads: int = 0
    local_visits: int = 0
    contacting_leads: int = 0
    in_progress_leads: int = 0
    scheduled_leads: int = 0
    negotiation_leads: int = 0
    credit_analysis_leads: int = 0
    approved_leads: int = 0
    signed_leads: int = 0

    @property
    def leads_in(self) -> int:
        return self.new_leads + self.repique_leads

    @property
    def balance_delta(self) -> int:
        return self.new_leads + self.repique_leads - self.discarded_leads - self.signed_leads

    def counters(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in FUNNEL_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"date": self.date.isoformat()}
        for name in FUNNEL_FIELDS:
            out[CAMEL_NAMES[name]] = getattr(self, name)
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DailyEntry":
        """Build an entry from its JSON form. Absent counters (old backups lack repiqueLeads) read as 0."""
        day = raw["date"]
        if not isinstance(day, date):
            day = date.fromisoformat(str(day))
        return cls(date=day, **{name: _count(raw, CAMEL_NAMES[name]) for name in FUNNEL_FIELDS})


@dataclass(frozen=True, order=True)
class Month:
    year: int
    month: int

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def contains(self, day: date) -> bool:
        return day.year == self.year and day.month == self.month

    @classmethod
    def of(cls, day: date) -> "Month":
        return cls(day.year, day.month)


@dataclass(frozen=True)
class ProjectedEntry:
    entry: DailyEntry
    start_of_day_balance: int
    end_of_day_balance: int

    @property
    def date(self) -> date:
        return self.entry.date

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {"date": self.entry.date, "start_of_day_balance": self.start_of_day_balance}
        record.update(self.entry.counters())
        record["end_of_day_balance"] = self.end_of_day_balance
        return record


@dataclass(frozen=True)
class BrokerProfile:
    broker_name: str
    initial_leads: int = 0
    monthly_sales_goal: Optional[int] = None
    daily_entries: Tuple[DailyEntry, ...] = field(default_factory=tuple)

    @property
    def key(self) -> str:
        return self.broker_name.casefold()

    def entry_for(self, day: date) -> Optional[DailyEntry]:
        for entry in self.daily_entries:
            if entry.date == day:
                return entry
        return None

    def with_entry(self, entry: DailyEntry) -> "BrokerProfile":
        entries: List[DailyEntry] = list(self.daily_entries)
        for idx, existing in enumerate(entries):
            if existing.date == entry.date:
                entries[idx] = entry
                break
        else:
            entries.append(entry)
        return replace(self, daily_entries=tuple(entries))

    def without_entry(self, day: date) -> "BrokerProfile":
        return replace(self, daily_entries=tuple(e for e in self.daily_entries if e.date != day))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"brokerName": self.broker_name, "initialLeads": self.initial_leads}
        if self.monthly_sales_goal is not None:
            out["monthlySalesGoal"] = self.monthly_sales_goal
        out["dailyEntries"] = [e.to_dict() for e in self.daily_entries]
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "BrokerProfile":
        goal = raw.get("monthlySalesGoal")
        entries: Dict[date, DailyEntry] = {}
        for item in raw.get("dailyEntries") or []:
            entry = DailyEntry.from_dict(item)
            # one entry per date; a later duplicate wins
            entries[entry.date] = entry
        return cls(
            broker_name=str(raw["brokerName"]),
            initial_leads=int(raw.get("initialLeads") or 0),
            monthly_sales_goal=int(goal) if goal not in (None, "") else None,
            daily_entries=tuple(entries.values()),
        )
