from __future__ import annotations

import datetime as dt
from typing import Dict, Optional

from pydantic import BaseModel, Field


class BrokerModel(BaseModel):
    broker_name: str
    initial_leads: int = 0
    monthly_sales_goal: Optional[int] = None


class DailyEntryModel(BaseModel):
    date: dt.date
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


class BulkEditModel(BaseModel):
    start: dt.date
    end: dt.date
    # Counters left out keep each day's existing value.
    values: Dict[str, Optional[int]] = Field(default_factory=dict)
