from __future__ import annotations

import calendar
import json
import re
from datetime import date
from io import BytesIO
from typing import List, Optional
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.graphics.charts.legends import Legend
from reportlab.graphics.charts.linecharts import HorizontalLineChart
from reportlab.graphics.shapes import Drawing, Rect
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ledger_core.balance import project_profile, projected_frame
from ledger_core.charts import BRAND_PRIMARY, BRAND_SECONDARY, SALES_GREEN
from ledger_core.metrics_monthly import compute_goal_progress, compute_monthly_summary, month_entries_frame
from ledger_core.models import FIELD_LABELS, FUNNEL_FIELDS, BrokerProfile, Month
from ledger_core.storage import Records

UTF8_BOM = "\ufeff"

REPORT_HEADERS = {
    "date": "Date",
    "start_of_day_balance": "Start-of-Day Balance",
    **FIELD_LABELS,
    "end_of_day_balance": "End-of-Day Balance",
}


def backup_json(records: Records) -> str:
    return json.dumps(records, indent=2, ensure_ascii=False)


def backup_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"backup_performance_leads_{today.isoformat()}.json"


def report_frame(profile: BrokerProfile, month: Optional[Month] = None) -> pd.DataFrame:
    projected = project_profile(profile)
    if month is not None:
        projected = [p for p in projected if month.contains(p.date)]
    df = projected_frame(projected)
    df = df[["date", "start_of_day_balance", *FUNNEL_FIELDS, "end_of_day_balance"]].copy()
    df["date"] = df["date"].map(lambda d: d.isoformat())
    return df.rename(columns=REPORT_HEADERS)


def report_csv(profile: BrokerProfile, month: Optional[Month] = None) -> bytes:
    """Daily report with a BOM so spreadsheet apps detect UTF-8."""
    csv_text = report_frame(profile, month).to_csv(index=False, lineterminator="\n")
    return (UTF8_BOM + csv_text).encode("utf-8")


def report_filename(profile: BrokerProfile, month: Optional[Month] = None) -> str:
    stem = re.sub(r"\s+", "_", profile.broker_name)
    suffix = f"-{month.label}" if month is not None else ""
    return f"Historico-{stem}{suffix}.csv"


# ---------------- Monthly PDF ----------------
TREND_SERIES = (
    ("end_of_day_balance", "Lead Balance", BRAND_PRIMARY),
    ("new_leads", "New Leads", BRAND_SECONDARY),
    ("signed_leads", "Sales", SALES_GREEN),
)
PDF_TABLE_COLUMNS = {
    "date": "Date",
    "start_of_day_balance": "Start",
    "new_leads": FIELD_LABELS["new_leads"],
    "repique_leads": FIELD_LABELS["repique_leads"],
    "discarded_leads": FIELD_LABELS["discarded_leads"],
    "local_visits": FIELD_LABELS["local_visits"],
    "signed_leads": FIELD_LABELS["signed_leads"],
    "end_of_day_balance": "End",
}
GRID_GREY = colors.HexColor("#e5e7eb")


def _trend_drawing(df: pd.DataFrame, width: float, height: float = 6 * cm) -> Drawing:
    drawing = Drawing(width, height)
    chart = HorizontalLineChart()
    chart.x, chart.y = 30, 30
    chart.width, chart.height = width - 40, height - 55
    chart.data = [tuple(int(v) for v in df[col]) for col, _, _ in TREND_SERIES]
    chart.categoryAxis.categoryNames = [d.strftime("%d/%m") for d in df["date"]]
    chart.categoryAxis.labels.fontSize = 7
    chart.categoryAxis.labels.angle = 45
    chart.categoryAxis.labels.boxAnchor = "ne"
    chart.valueAxis.labels.fontSize = 7
    low = min(min(series) for series in chart.data)
    high = max(max(series) for series in chart.data)
    chart.valueAxis.valueMin = min(0, low)
    chart.valueAxis.valueMax = high if high > chart.valueAxis.valueMin else chart.valueAxis.valueMin + 1
    for idx, (_, _, color) in enumerate(TREND_SERIES):
        chart.lines[idx].strokeColor = colors.HexColor(color)
        chart.lines[idx].strokeWidth = 1.5
    drawing.add(chart)

    legend = Legend()
    legend.x, legend.y = 30, height - 6
    legend.columnMaximum = 1
    legend.deltax = 90
    legend.fontSize = 8
    legend.colorNamePairs = [(colors.HexColor(color), label) for _, label, color in TREND_SERIES]
    drawing.add(legend)
    return drawing


def _goal_bar(bar_pct: int, width: float, height: float = 10) -> Drawing:
    drawing = Drawing(width, height)
    drawing.add(Rect(0, 0, width, height, fillColor=GRID_GREY, strokeColor=None))
    drawing.add(Rect(0, 0, width * bar_pct / 100, height, fillColor=colors.HexColor(SALES_GREEN), strokeColor=None))
    return drawing


def _table(rows: List[List[str]], col_widths: List[float], *, header: bool) -> Table:
    table = Table(rows, colWidths=col_widths, repeatRows=1 if header else 0)
    style = [
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("LINEBELOW", (0, 0), (-1, -1), 0.25, GRID_GREY),
    ]
    if header:
        style += [
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f3f4f6")),
        ]
    table.setStyle(TableStyle(style))
    return table


def report_pdf(profile: BrokerProfile, month: Month) -> bytes:
    """One-month report: summary, goal progress, balance trend and the daily table, on A4."""
    summary = compute_monthly_summary(profile, month)
    goal = compute_goal_progress(profile, summary)
    df = month_entries_frame(profile, month)

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=1.5 * cm,
        rightMargin=1.5 * cm,
        topMargin=1.5 * cm,
        bottomMargin=1.5 * cm,
        title=f"Monthly report - {profile.broker_name} - {month.label}",
    )
    styles = getSampleStyleSheet()
    story = [
        Paragraph(f"Monthly report: {escape(profile.broker_name)}", styles["Title"]),
        Paragraph(f"{calendar.month_name[month.month]} {month.year}", styles["Heading2"]),
        _table(
            [
                ["Starting balance", str(summary.month_start_balance)],
                ["New leads", str(summary.new_leads)],
                ["Repique", str(summary.repique_leads)],
                ["Discarded", str(summary.discarded_leads)],
                ["Total leads in", str(summary.total_leads_in)],
                ["Sales", str(summary.signed_leads)],
                ["Conversion", f"{summary.conversion_rate_display}%"],
                ["Ending balance", str(summary.month_end_balance)],
            ],
            [6 * cm, 3 * cm],
            header=False,
        ),
        Spacer(1, 0.4 * cm),
    ]
    if goal.goal is None:
        story.append(Paragraph("No monthly sales goal set.", styles["Normal"]))
    else:
        story += [
            Paragraph(f"Goal: {goal.current} / {goal.goal} ({goal.progress_pct}%)", styles["Normal"]),
            Spacer(1, 0.15 * cm),
            _goal_bar(goal.bar_pct, doc.width),
        ]
    story.append(Spacer(1, 0.5 * cm))

    if df.empty:
        story.append(Paragraph("No entries in this month.", styles["Normal"]))
    else:
        story += [
            Paragraph("Daily trend", styles["Heading3"]),
            _trend_drawing(df, doc.width),
            Spacer(1, 0.4 * cm),
            Paragraph("Daily entries", styles["Heading3"]),
        ]
        rows = [list(PDF_TABLE_COLUMNS.values())]
        for record in df.to_dict(orient="records"):
            rows.append(
                [record["date"].strftime("%d/%m/%Y")] + [str(record[col]) for col in list(PDF_TABLE_COLUMNS)[1:]]
            )
        story.append(_table(rows, [doc.width / len(PDF_TABLE_COLUMNS)] * len(PDF_TABLE_COLUMNS), header=True))

    doc.build(story)
    return buffer.getvalue()


def report_pdf_filename(profile: BrokerProfile, month: Month) -> str:
    stem = re.sub(r"\s+", "_", profile.broker_name)
    return f"Relatorio-{stem}-{calendar.month_name[month.month]}-{month.year}.pdf"
