from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Literal, Optional

import numpy as np
import pandas as pd
from fastapi import Body, Depends, FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from ledger_api.schemas import BrokerModel, BulkEditModel, DailyEntryModel
from ledger_core.balance import current_balance, history_frame
from ledger_core.config import get_settings
from ledger_core.errors import DuplicateName, InvalidFormat, ValidationError
from ledger_core.export import (
    backup_filename,
    backup_json,
    report_csv,
    report_filename,
    report_pdf,
    report_pdf_filename,
)
from ledger_core.logging_utils import configure_logging
from ledger_core.metrics_monthly import compute_monthly_report
from ledger_core.metrics_ranking import SortConfig, compute_ranking
from ledger_core.models import BrokerProfile, Month
from ledger_core.state import get_store
from ledger_core.store import LedgerStore
from ledger_core.validation import normalize_entry, normalize_overrides, parse_date, parse_month

configure_logging()
app = FastAPI(title="Broker Lead Ledger API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
                date: lambda d: d.isoformat(),
            },
        ),
    )


def _error(exc: Exception, where: str) -> JSONResponse:
    if isinstance(exc, DuplicateName):
        status = 409
    elif isinstance(exc, (InvalidFormat, ValidationError)):
        status = 400
    else:
        logger.exception("%s failed", where)
        return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})
    logger.info("%s rejected: %s", where, exc)
    content = {"error": str(exc), "type": type(exc).__name__}
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=status, content=content)


def _not_found(name: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": f"Broker '{name}' not found.", "type": "NotFound"})


def _broker_payload(profile: Optional[BrokerProfile]) -> Optional[dict]:
    if profile is None:
        return None
    return {**profile.to_dict(), "currentBalance": current_balance(profile)}


@app.get("/brokers")
def list_brokers(store: LedgerStore = Depends(get_store)):
    try:
        return _json({"brokers": [_broker_payload(p) for p in store.brokers()]})
    except Exception as exc:
        return _error(exc, "list_brokers")


@app.post("/brokers")
def add_broker(body: BrokerModel, store: LedgerStore = Depends(get_store)):
    try:
        profile = store.add(body.broker_name, body.initial_leads, body.monthly_sales_goal)
        return _json({"broker": _broker_payload(profile)}, status_code=201)
    except Exception as exc:
        return _error(exc, "add_broker")


@app.get("/brokers/{name}")
def get_broker(name: str, store: LedgerStore = Depends(get_store)):
    profile = store.get(name)
    if profile is None:
        return _not_found(name)
    return _json({"broker": _broker_payload(profile)})


@app.put("/brokers/{name}")
def update_broker(name: str, body: BrokerModel, store: LedgerStore = Depends(get_store)):
    try:
        profile = store.update(name, body.broker_name, body.initial_leads, body.monthly_sales_goal)
        return _json({"broker": _broker_payload(profile)})
    except Exception as exc:
        return _error(exc, "update_broker")


@app.delete("/brokers/{name}")
def delete_broker(name: str, store: LedgerStore = Depends(get_store)):
    try:
        return _json({"deleted": store.delete(name)})
    except Exception as exc:
        return _error(exc, "delete_broker")


@app.put("/brokers/{name}/entries")
def save_entry(name: str, body: DailyEntryModel, store: LedgerStore = Depends(get_store)):
    try:
        entry = normalize_entry(body.model_dump())
        return _json({"broker": _broker_payload(store.upsert_entry(name, entry))})
    except Exception as exc:
        return _error(exc, "save_entry")


@app.post("/brokers/{name}/entries/bulk")
def bulk_edit(name: str, body: BulkEditModel, store: LedgerStore = Depends(get_store)):
    try:
        overrides = normalize_overrides(body.values)
        profile = store.bulk_upsert(name, body.start, body.end, overrides)
        return _json({"broker": _broker_payload(profile)})
    except Exception as exc:
        return _error(exc, "bulk_edit")


@app.delete("/brokers/{name}/entries/{day}")
def delete_entry(name: str, day: str, store: LedgerStore = Depends(get_store)):
    try:
        profile = store.delete_entry(name, parse_date(day))
        return _json({"broker": _broker_payload(profile)})
    except Exception as exc:
        return _error(exc, "delete_entry")


@app.get("/brokers/{name}/history")
def history(name: str, store: LedgerStore = Depends(get_store)):
    profile = store.get(name)
    if profile is None:
        return _not_found(name)
    try:
        df = history_frame(profile)
        return _json({"broker": profile.broker_name, "entries": df.to_dict(orient="records")})
    except Exception as exc:
        return _error(exc, "history")


@app.get("/brokers/{name}/monthly")
def monthly(name: str, month: Optional[str] = Query(default=None), store: LedgerStore = Depends(get_store)):
    profile = store.get(name)
    if profile is None:
        return _not_found(name)
    try:
        target = parse_month(month) if month else Month.of(date.today())
        return _json(compute_monthly_report(profile, target))
    except Exception as exc:
        return _error(exc, "monthly")


@app.get("/ranking")
def ranking(
    sort_key: Literal["total_leads_in", "total_sales", "conversion_rate"] = Query(default="total_sales"),
    direction: Literal["ascending", "descending"] = Query(default="descending"),
    store: LedgerStore = Depends(get_store),
):
    try:
        return _json(compute_ranking(store.brokers(), SortConfig(key=sort_key, direction=direction)))
    except Exception as exc:
        return _error(exc, "ranking")


@app.get("/export/backup")
def export_backup(store: LedgerStore = Depends(get_store)):
    content = backup_json(store.to_records()).encode("utf-8")
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f"attachment; filename={backup_filename()}"},
    )


@app.post("/import")
def import_backup(payload: Any = Body(...), store: LedgerStore = Depends(get_store)):
    try:
        return _json({"restored": store.restore(payload)})
    except Exception as exc:
        return _error(exc, "import_backup")


@app.get("/export/report/{name}")
def export_report(name: str, month: Optional[str] = Query(default=None), store: LedgerStore = Depends(get_store)):
    profile = store.get(name)
    if profile is None:
        return _not_found(name)
    try:
        target = parse_month(month) if month else None
        return Response(
            content=report_csv(profile, target),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f"attachment; filename={report_filename(profile, target)}"},
        )
    except Exception as exc:
        return _error(exc, "export_report")


@app.get("/export/report/{name}/pdf")
def export_report_pdf(name: str, month: Optional[str] = Query(default=None), store: LedgerStore = Depends(get_store)):
    profile = store.get(name)
    if profile is None:
        return _not_found(name)
    try:
        target = parse_month(month) if month else Month.of(date.today())
        return Response(
            content=report_pdf(profile, target),
            media_type="application/pdf",
            headers={"Content-Disposition": f"attachment; filename={report_pdf_filename(profile, target)}"},
        )
    except Exception as exc:
        return _error(exc, "export_report_pdf")
