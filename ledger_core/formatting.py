from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

import pandas as pd


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def conversion_rate(signed: int, leads_in: int) -> float:
    return signed / leads_in * 100 if leads_in > 0 else 0.0


def format_rate(value: object) -> str:
    """One-decimal percentage text, "0.0" for missing values."""
    rounded = round_half_up(value, 1)
    return f"{rounded if rounded is not None else 0.0:.1f}"


def format_rate_columns(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    formatted = df.copy()
    for c in cols:
        if c in formatted.columns:
            formatted[c] = formatted[c].apply(lambda v: f"{format_rate(v)}%")
    return formatted
