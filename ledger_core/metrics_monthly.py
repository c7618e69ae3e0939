from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

from ledger_core.balance import balance_before, project_profile, projected_frame
from ledger_core.charts import BRAND_PRIMARY, BRAND_SECONDARY, SALES_GREEN, to_vega_spec
from ledger_core.formatting import conversion_rate, format_rate, round_half_up
from ledger_core.models import BrokerProfile, Month


@dataclass(frozen=True)
class MonthlySummary:
    month: str
    new_leads: int
    repique_leads: int
    signed_leads: int
    discarded_leads: int
    total_leads_in: int
    conversion_rate: float
    conversion_rate_display: str
    month_start_balance: int
    month_end_balance: int


@dataclass(frozen=True)
class GoalProgress:
    goal: Optional[int]
    current: int
    progress_pct: Optional[int]
    bar_pct: int


def compute_monthly_summary(profile: BrokerProfile, month: Month) -> MonthlySummary:
    start_balance = balance_before(profile, month.first_day)
    month_entries = [e for e in profile.daily_entries if month.contains(e.date)]
    new_leads = sum(e.new_leads for e in month_entries)
    repique_leads = sum(e.repique_leads for e in month_entries)
    signed_leads = sum(e.signed_leads for e in month_entries)
    discarded_leads = sum(e.discarded_leads for e in month_entries)
    total_in = new_leads + repique_leads
    rate = conversion_rate(signed_leads, total_in)
    return MonthlySummary(
        month=month.label,
        new_leads=new_leads,
        repique_leads=repique_leads,
        signed_leads=signed_leads,
        discarded_leads=discarded_leads,
        total_leads_in=total_in,
        conversion_rate=rate,
        conversion_rate_display=format_rate(rate),
        month_start_balance=start_balance,
        month_end_balance=start_balance + total_in - discarded_leads - signed_leads,
    )


def compute_goal_progress(profile: BrokerProfile, summary: MonthlySummary) -> GoalProgress:
    goal = profile.monthly_sales_goal
    if not goal or goal <= 0:
        return GoalProgress(goal=None, current=summary.signed_leads, progress_pct=None, bar_pct=0)
    progress = int(round_half_up(summary.signed_leads / goal * 100))
    return GoalProgress(goal=goal, current=summary.signed_leads, progress_pct=progress, bar_pct=min(progress, 100))


def month_entries_frame(profile: BrokerProfile, month: Month) -> pd.DataFrame:
    """Projected entries that fall inside `month`, oldest first."""
    projected = [p for p in project_profile(profile) if month.contains(p.date)]
    return projected_frame(projected)


def compute_monthly_report(profile: BrokerProfile, month: Month) -> Dict[str, Any]:
    summary = compute_monthly_summary(profile, month)
    goal = compute_goal_progress(profile, summary)
    df = month_entries_frame(profile, month)
    if df.empty:
        return {
            "broker": profile.broker_name,
            "summary": asdict(summary),
            "goal": asdict(goal),
            "entries": [],
            "charts": {},
        }

    trend = df[["date", "end_of_day_balance", "new_leads", "signed_leads"]].copy()
    trend["date"] = pd.to_datetime(trend["date"])
    long_df = trend.melt(id_vars="date", var_name="series", value_name="value")
    long_df["series"] = long_df["series"].map(
        {"end_of_day_balance": "Lead Balance", "new_leads": "New Leads", "signed_leads": "Sales"}
    )
    hover = alt.selection_point(fields=["series"], on="mouseover", empty="all")
    line = (
        alt.Chart(long_df)
        .mark_line(point={"filled": True, "size": 60}, interpolate="monotone")
        .encode(
            x=alt.X("date:T", title="Day", axis=alt.Axis(format="%d/%m", grid=False)),
            y=alt.Y("value:Q", title=None, scale=alt.Scale(zero=False), axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color(
                "series:N",
                title=None,
                scale=alt.Scale(domain=["Lead Balance", "New Leads", "Sales"], range=[BRAND_PRIMARY, BRAND_SECONDARY, SALES_GREEN]),
                legend=alt.Legend(orient="top"),
            ),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=[
                alt.Tooltip("date:T", title="Day", format="%d/%m/%Y"),
                alt.Tooltip("series:N", title="Series"),
                alt.Tooltip("value:Q", title="Value", format=","),
            ],
        )
        .add_params(hover)
        .properties(height=280)
    )

    entries = df.assign(date=df["date"].map(lambda d: d.isoformat()))
    return {
        "broker": profile.broker_name,
        "summary": asdict(summary),
        "goal": asdict(goal),
        "entries": entries.to_dict(orient="records"),
        "charts": {"monthly_trend": to_vega_spec(line)},
    }
