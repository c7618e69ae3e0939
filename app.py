import streamlit as st
from contextlib import contextmanager
from datetime import date
from typing import Dict, Optional

from ledger_core.balance import current_balance, history_frame
from ledger_core.errors import LedgerError
from ledger_core.export import backup_filename, backup_json, report_csv, report_filename, report_pdf, report_pdf_filename
from ledger_core.formatting import format_rate_columns
from ledger_core.logging_utils import configure_logging
from ledger_core.metrics_monthly import compute_goal_progress, compute_monthly_report, compute_monthly_summary, month_entries_frame
from ledger_core.metrics_ranking import SortConfig, comparison_table, compute_ranking, rank_brokers
from ledger_core.models import FIELD_LABELS, FUNNEL_FIELDS, BrokerProfile, Month
from ledger_core.state import init_store
from ledger_core.store import LedgerStore
from ledger_core.validation import normalize_entry, normalize_overrides, parse_month

configure_logging()

MEDAL_ICONS = {"gold": "🥇", "silver": "🥈", "bronze": "🥉"}
SORT_LABELS = {"total_leads_in": "Leads In", "total_sales": "Sales", "conversion_rate": "Conversion"}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .rank-row {display: flex;justify-content: space-between;padding: 4px 0;border-bottom: 1px dashed #e5e7eb;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header"><div class="card-title">{title}</div></div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def render_page_header(title: str, breadcrumb: str):
    inject_base_styles()
    st.markdown(
        f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
        unsafe_allow_html=True,
    )


def run_action(action, success: Optional[str] = None) -> bool:
    """Run a store mutation, turning ledger errors into a message instead of a crash."""
    try:
        action()
    except LedgerError as exc:
        st.error(str(exc))
        return False
    if success:
        st.toast(success)
    return True


# ---------- UI setup ----------
st.set_page_config(page_title="Lead Performance", layout="wide")
inject_base_styles()
st.title("Lead Performance")


@st.cache_resource
def load_store() -> LedgerStore:
    return init_store()


store = load_store()
if "selected_broker" not in st.session_state:
    st.session_state["selected_broker"] = None
if "sort_config" not in st.session_state:
    st.session_state["sort_config"] = SortConfig()


# ----- Broker management -----
def render_add_broker_form():
    with st.form("add_broker", clear_on_submit=True):
        cols = st.columns([3, 2, 2])
        name = cols[0].text_input("Broker name")
        initial = cols[1].number_input("Starting lead balance", min_value=0, step=1, value=0)
        goal = cols[2].number_input("Monthly sales goal (optional)", min_value=0, step=1, value=0)
        if st.form_submit_button("Add broker"):
            run_action(lambda: store.add(name, int(initial), int(goal) or None), success=f"Broker {name.strip()} added.")


def render_ranking():
    ranked = rank_brokers(store.brokers())
    if ranked.empty:
        st.info("No sales recorded yet.")
        return
    for row in ranked.itertuples(index=False):
        icon = MEDAL_ICONS.get(row.medal, f"{row.rank}.")
        st.markdown(
            f"<div class='rank-row'><span>{icon} {row.broker_name}</span><b>{row.total_sales} sales</b></div>",
            unsafe_allow_html=True,
        )


def render_comparison():
    sort: SortConfig = st.session_state["sort_config"]
    btn_cols = st.columns(len(SORT_LABELS))
    for col, (key, label) in zip(btn_cols, SORT_LABELS.items()):
        marker = f" {sort.indicator}" if sort.key == key else ""
        if col.button(f"{label}{marker}", key=f"sort_{key}", use_container_width=True):
            st.session_state["sort_config"] = sort.request(key)
            st.rerun()
    table = comparison_table(store.brokers(), sort)
    if table.empty:
        st.info("Add brokers to compare them.")
        return
    display = format_rate_columns(table, ["conversion_rate"]).rename(
        columns={"broker_name": "Broker", "total_leads_in": "Leads In", "total_sales": "Sales", "conversion_rate": "Conversion"}
    )
    st.dataframe(display, hide_index=True, use_container_width=True)
    chart = compute_ranking(store.brokers(), sort)["charts"].get("comparison")
    if chart:
        st.vega_lite_chart(chart, use_container_width=True)


def render_broker_list():
    brokers = store.brokers()
    if not brokers:
        st.info("No brokers yet. Add one above.")
        return
    for profile in brokers:
        cols = st.columns([4, 2, 2, 1, 1])
        cols[0].markdown(f"**{profile.broker_name}**")
        cols[1].caption(f"Balance: {current_balance(profile)}")
        cols[2].caption(f"Goal: {profile.monthly_sales_goal or '-'}")
        if cols[3].button("Open", key=f"open_{profile.broker_name}"):
            st.session_state["selected_broker"] = profile.broker_name
            st.rerun()
        with cols[4].popover("Edit"):
            render_edit_broker(profile)


def render_edit_broker(profile: BrokerProfile):
    with st.form(f"edit_{profile.broker_name}"):
        name = st.text_input("Broker name", value=profile.broker_name)
        initial = st.number_input("Starting lead balance", min_value=0, step=1, value=profile.initial_leads)
        goal = st.number_input("Monthly sales goal", min_value=0, step=1, value=profile.monthly_sales_goal or 0)
        save = st.form_submit_button("Save changes")
        confirm = st.checkbox("I understand deleting removes all of this broker's entries permanently")
        delete = st.form_submit_button("Delete broker", type="primary")
    if save and run_action(lambda: store.update(profile.broker_name, name, int(initial), int(goal) or None), success="Broker updated."):
        st.rerun()
    if delete:
        if not confirm:
            st.warning("Tick the confirmation box to delete this broker.")
        else:
            store.delete(profile.broker_name)
            st.rerun()


def render_backup_controls():
    cols = st.columns(2)
    with cols[0]:
        if len(store):
            st.download_button(
                "Export backup (JSON)",
                data=backup_json(store.to_records()).encode("utf-8"),
                file_name=backup_filename(),
                mime="application/json",
            )
        else:
            st.caption("Nothing to export yet.")
    with cols[1]:
        uploaded = st.file_uploader("Restore from backup", type=["json"])
        if uploaded is not None and st.button("Restore (replaces all data)"):
            if run_action(lambda: store.import_json(uploaded.getvalue()), success="Data restored."):
                st.session_state["selected_broker"] = None
                st.rerun()


def render_management_page():
    render_page_header("Brokers", "Home / Brokers")
    with card("Add broker"):
        render_add_broker_form()
    with card("Brokers"):
        render_broker_list()
    cols = st.columns([1, 2])
    with cols[0]:
        with card("Sales ranking"):
            render_ranking()
    with cols[1]:
        with card("Comparison"):
            render_comparison()
    with card("Backup"):
        render_backup_controls()


# ----- Broker dashboard -----
def render_entry_form(profile: BrokerProfile):
    day = st.date_input("Day", value=date.today(), key="entry_day")
    existing = profile.entry_for(day)
    values: Dict[str, int] = existing.counters() if existing else {f: 0 for f in FUNNEL_FIELDS}
    with st.form(f"entry_{day.isoformat()}"):
        cols = st.columns(4)
        raw = {}
        for idx, field in enumerate(FUNNEL_FIELDS):
            raw[field] = cols[idx % 4].number_input(FIELD_LABELS[field], min_value=0, step=1, value=values[field], key=f"f_{day.isoformat()}_{field}")
        if st.form_submit_button("Save entry"):
            if run_action(lambda: store.upsert_entry(profile.broker_name, normalize_entry(raw, day=day)), success="Entry saved."):
                st.rerun()


def render_bulk_edit(profile: BrokerProfile):
    with st.form("bulk_edit"):
        cols = st.columns(2)
        start = cols[0].date_input("Start date", value=date.today())
        end = cols[1].date_input("End date", value=date.today())
        st.caption("Blank fields keep each day's current value.")
        field_cols = st.columns(4)
        raw = {}
        for idx, field in enumerate(FUNNEL_FIELDS):
            raw[field] = field_cols[idx % 4].text_input(FIELD_LABELS[field], value="", key=f"bulk_{field}")
        if st.form_submit_button("Apply to range"):
            ok = run_action(
                lambda: store.bulk_upsert(profile.broker_name, start, end, normalize_overrides(raw)),
                success="Bulk edit saved.",
            )
            if ok:
                st.rerun()


def render_monthly_summary(profile: BrokerProfile, month: Month):
    summary = compute_monthly_summary(profile, month)
    goal = compute_goal_progress(profile, summary)
    cols = st.columns(6)
    cols[0].metric("Starting balance", summary.month_start_balance)
    cols[1].metric("New leads", summary.new_leads)
    cols[2].metric("Repique", summary.repique_leads)
    cols[3].metric("Sales", summary.signed_leads)
    cols[4].metric("Conversion", f"{summary.conversion_rate_display}%")
    cols[5].metric("Ending balance", summary.month_end_balance)
    if goal.goal is None:
        st.caption("No monthly sales goal set.")
    else:
        st.progress(goal.bar_pct / 100, text=f"Goal: {goal.current} / {goal.goal} ({goal.progress_pct}%)")

    df = month_entries_frame(profile, month)
    if df.empty:
        st.info("No entries in this month.")
        return
    chart = compute_monthly_report(profile, month)["charts"].get("monthly_trend")
    if chart:
        st.vega_lite_chart(chart, use_container_width=True)
    st.dataframe(df.rename(columns={**FIELD_LABELS, "start_of_day_balance": "Start", "end_of_day_balance": "End"}), hide_index=True, use_container_width=True)


def render_history(profile: BrokerProfile):
    df = history_frame(profile)
    if df.empty:
        st.info("No entries yet.")
        return
    for row in df.to_dict(orient="records"):
        day = row["date"]
        cols = st.columns([2, 6, 1])
        cols[0].markdown(f"**{day.strftime('%d/%m/%Y')}**  \n{row['start_of_day_balance']} → {row['end_of_day_balance']}")
        filled = [f"{FIELD_LABELS[f]}: {row[f]}" for f in FUNNEL_FIELDS if row[f] > 0]
        cols[1].caption(" · ".join(filled) + f"  \nConversion: {row['daily_conversion']}")
        if cols[2].button("Delete", key=f"del_{day.isoformat()}"):
            store.delete_entry(profile.broker_name, day)
            st.rerun()


def render_pdf_export(profile: BrokerProfile, month: Month):
    pdf_key = (profile.broker_name, month.label)
    if st.button("Generate monthly PDF"):
        with st.spinner("Generating PDF..."):
            st.session_state["monthly_pdf"] = (pdf_key, report_pdf(profile, month))
    cached = st.session_state.get("monthly_pdf")
    if cached and cached[0] == pdf_key:
        st.download_button(
            "Download monthly PDF",
            data=cached[1],
            file_name=report_pdf_filename(profile, month),
            mime="application/pdf",
        )


def render_dashboard_page(profile: BrokerProfile):
    render_page_header(f"{profile.broker_name}'s logbook", "Home / Brokers / Dashboard")
    top = st.columns([2, 2, 2, 2])
    if top[0].button("← Switch broker"):
        st.session_state["selected_broker"] = None
        st.rerun()
    month_text = top[1].text_input("Month (YYYY-MM)", value=Month.of(date.today()).label)
    try:
        month = parse_month(month_text)
    except LedgerError as exc:
        st.error(str(exc))
        return
    top[2].download_button(
        "Export month CSV",
        data=report_csv(profile, month),
        file_name=report_filename(profile, month),
        mime="text/csv",
    )
    if profile.daily_entries:
        top[3].download_button(
            "Export full history CSV",
            data=report_csv(profile),
            file_name=report_filename(profile),
            mime="text/csv",
        )
    with card(f"Monthly summary ({month.label})"):
        render_monthly_summary(profile, month)
        render_pdf_export(profile, month)
    with card("Daily entry"):
        render_entry_form(profile)
    with st.expander("Bulk edit", expanded=False):
        render_bulk_edit(profile)
    with card("History"):
        render_history(profile)


selected = st.session_state["selected_broker"]
profile = store.get(selected) if selected else None
if profile is None:
    render_management_page()
else:
    render_dashboard_page(profile)
