"""Running lead balance over a broker's entries.

Balance is never stored. Every view that shows a balance (monthly summary,
entry history, CSV report) goes through `project_balances`.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List

import pandas as pd

from ledger_core.models import FUNNEL_FIELDS, BrokerProfile, DailyEntry, ProjectedEntry

HISTORY_COLUMNS = ["date", "start_of_day_balance", *FUNNEL_FIELDS, "end_of_day_balance"]


def project_balances(entries: Iterable[DailyEntry], initial_leads: int) -> List[ProjectedEntry]:
    """Annotate entries with start/end-of-day balance, oldest first."""
    balance = initial_leads
    out: List[ProjectedEntry] = []
    for entry in sorted(entries, key=lambda e: e.date):
        start = balance
        balance = start + entry.balance_delta
        out.append(ProjectedEntry(entry=entry, start_of_day_balance=start, end_of_day_balance=balance))
    return out


def project_profile(profile: BrokerProfile) -> List[ProjectedEntry]:
    return project_balances(profile.daily_entries, profile.initial_leads)


def balance_before(profile: BrokerProfile, day: date) -> int:
    """Balance carried into `day`: end of the last entry strictly before it, else the initial leads."""
    balance = profile.initial_leads
    for projected in project_profile(profile):
        if projected.date >= day:
            break
        balance = projected.end_of_day_balance
    return balance


def current_balance(profile: BrokerProfile) -> int:
    projected = project_profile(profile)
    return projected[-1].end_of_day_balance if projected else profile.initial_leads


def projected_frame(projected: List[ProjectedEntry]) -> pd.DataFrame:
    if not projected:
        return pd.DataFrame(columns=HISTORY_COLUMNS)
    return pd.DataFrame([p.to_record() for p in projected], columns=HISTORY_COLUMNS)


def history_frame(profile: BrokerProfile) -> pd.DataFrame:
    """Entry history for display, most recent first, with the day's conversion."""
    df = projected_frame(project_profile(profile))
    leads_in = df["new_leads"] + df["repique_leads"]
    df["daily_conversion"] = [
        f"{signed / total * 100:.1f}%" if total > 0 else "N/A"
        for signed, total in zip(df["signed_leads"].tolist(), leads_in.tolist())
    ]
    return df.iloc[::-1].reset_index(drop=True)
