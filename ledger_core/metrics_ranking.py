from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Literal, Optional

import altair as alt
import pandas as pd

from ledger_core.charts import BRAND_PRIMARY, BRAND_SECONDARY, to_vega_spec
from ledger_core.models import BrokerProfile

SortKey = Literal["total_leads_in", "total_sales", "conversion_rate"]
Direction = Literal["ascending", "descending"]

SORT_KEYS = ("total_leads_in", "total_sales", "conversion_rate")
MEDALS = {1: "gold", 2: "silver", 3: "bronze"}
TOTALS_COLUMNS = ["broker_name", "total_leads_in", "total_sales", "conversion_rate"]


@dataclass(frozen=True)
class SortConfig:
    key: SortKey = "total_sales"
    direction: Direction = "descending"

    def request(self, key: SortKey) -> "SortConfig":
        """Clicking a column: same key toggles direction, a new key starts ascending."""
        if key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {key}")
        if key == self.key and self.direction == "ascending":
            return SortConfig(key=key, direction="descending")
        return SortConfig(key=key, direction="ascending")

    @property
    def indicator(self) -> str:
        return "↑" if self.direction == "ascending" else "↓"


def broker_totals(profiles: Iterable[BrokerProfile]) -> pd.DataFrame:
    """Lifetime totals per broker, ordered by name (case-insensitive)."""
    rows: List[Dict[str, Any]] = []
    for profile in profiles:
        leads_in = sum(e.leads_in for e in profile.daily_entries)
        sales = sum(e.signed_leads for e in profile.daily_entries)
        rows.append(
            {
                "broker_name": profile.broker_name,
                "total_leads_in": leads_in,
                "total_sales": sales,
                "conversion_rate": sales / leads_in * 100 if leads_in > 0 else 0.0,
            }
        )
    if not rows:
        return pd.DataFrame(columns=TOTALS_COLUMNS)
    df = pd.DataFrame(rows, columns=TOTALS_COLUMNS)
    order = df["broker_name"].str.casefold().sort_values(kind="mergesort").index
    return df.loc[order].reset_index(drop=True)


def rank_brokers(profiles: Iterable[BrokerProfile]) -> pd.DataFrame:
    """Brokers with at least one sale, most sales first; equal totals stay in name order."""
    df = broker_totals(profiles)
    ranked = df[df["total_sales"] > 0].sort_values("total_sales", ascending=False, kind="mergesort")
    ranked = ranked[["broker_name", "total_sales"]].reset_index(drop=True)
    ranked.insert(0, "rank", range(1, len(ranked) + 1))
    ranked["medal"] = [MEDALS.get(r) for r in ranked["rank"].tolist()]
    return ranked


def comparison_table(profiles: Iterable[BrokerProfile], sort: Optional[SortConfig] = None) -> pd.DataFrame:
    sort = sort or SortConfig()
    df = broker_totals(profiles)
    if df.empty:
        return df
    return df.sort_values(sort.key, ascending=sort.direction == "ascending", kind="mergesort").reset_index(drop=True)


def compute_ranking(profiles: Iterable[BrokerProfile], sort: Optional[SortConfig] = None) -> Dict[str, Any]:
    profiles = list(profiles)
    sort = sort or SortConfig()
    ranked = rank_brokers(profiles)
    table = comparison_table(profiles, sort)
    if table.empty:
        return {"sort": asdict(sort), "ranking": ranked.to_dict(orient="records"), "comparison": [], "charts": {}}

    long_df = table.melt(
        id_vars="broker_name",
        value_vars=["total_sales", "total_leads_in"],
        var_name="metric",
        value_name="value",
    )
    long_df["metric"] = long_df["metric"].map({"total_sales": "Sales", "total_leads_in": "Leads In"})
    hover = alt.selection_point(fields=["broker_name"], on="mouseover", empty="all")
    bars = (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("broker_name:N", title=None, sort=table["broker_name"].tolist(), axis=alt.Axis(grid=False, labelAngle=0)),
            xOffset="metric:N",
            y=alt.Y("value:Q", title=None, axis=alt.Axis(format="d", tickMinStep=1, gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color(
                "metric:N",
                title=None,
                scale=alt.Scale(domain=["Sales", "Leads In"], range=[BRAND_PRIMARY, BRAND_SECONDARY]),
                legend=alt.Legend(orient="top"),
            ),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
            tooltip=[
                alt.Tooltip("broker_name:N", title="Broker"),
                alt.Tooltip("metric:N", title="Metric"),
                alt.Tooltip("value:Q", title="Value", format=","),
            ],
        )
        .add_params(hover)
        .properties(height=280)
    )
    return {
        "sort": asdict(sort),
        "ranking": ranked.to_dict(orient="records"),
        "comparison": table.to_dict(orient="records"),
        "charts": {"comparison": to_vega_spec(bars)},
    }
