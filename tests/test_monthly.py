from __future__ import annotations

from conftest import make_entry, make_profile
from ledger_core.balance import current_balance
from ledger_core.metrics_monthly import compute_goal_progress, compute_monthly_report, compute_monthly_summary
from ledger_core.models import Month


def _three_month_profile(goal=None):
    return make_profile(
        initial_leads=50,
        goal=goal,
        entries=[
            make_entry("2026-03-02", new_leads=6, discarded_leads=1, signed_leads=1),
            make_entry("2026-01-15", new_leads=10, repique_leads=2, discarded_leads=3, signed_leads=2),
            make_entry("2026-01-31", new_leads=4, signed_leads=1),
        ],
    )


def test_month_sums_and_balances():
    summary = compute_monthly_summary(_three_month_profile(), Month(2026, 1))

    assert summary.month == "2026-01"
    assert summary.new_leads == 14
    assert summary.repique_leads == 2
    assert summary.signed_leads == 3
    assert summary.discarded_leads == 3
    assert summary.total_leads_in == 16
    assert summary.conversion_rate_display == "18.8"
    assert summary.month_start_balance == 50
    assert summary.month_end_balance == 50 + 16 - 3 - 3


def test_empty_month_carries_prior_balance():
    summary = compute_monthly_summary(_three_month_profile(), Month(2026, 2))

    assert summary.total_leads_in == 0
    assert summary.signed_leads == 0
    assert summary.conversion_rate == 0.0
    assert summary.conversion_rate_display == "0.0"
    assert summary.month_start_balance == summary.month_end_balance == 60


def test_month_before_any_entry_starts_from_initial_leads():
    summary = compute_monthly_summary(_three_month_profile(), Month(2025, 12))
    assert summary.month_start_balance == summary.month_end_balance == 50


def test_month_end_matches_projected_balance():
    profile = _three_month_profile()
    assert compute_monthly_summary(profile, Month(2026, 3)).month_end_balance == current_balance(profile)
    assert compute_monthly_summary(profile, Month(2026, 6)).month_end_balance == current_balance(profile)


def test_goal_progress():
    profile = _three_month_profile(goal=2)
    progress = compute_goal_progress(profile, compute_monthly_summary(profile, Month(2026, 1)))

    assert progress.goal == 2
    assert progress.progress_pct == 150
    assert progress.bar_pct == 100


def test_goal_progress_without_goal():
    profile = _three_month_profile(goal=0)
    progress = compute_goal_progress(profile, compute_monthly_summary(profile, Month(2026, 1)))
    assert progress.goal is None
    assert progress.progress_pct is None


def test_monthly_report_payload():
    payload = compute_monthly_report(_three_month_profile(), Month(2026, 1))

    assert [row["date"] for row in payload["entries"]] == ["2026-01-15", "2026-01-31"]
    assert payload["entries"][0]["start_of_day_balance"] == 50
    assert payload["entries"][-1]["end_of_day_balance"] == payload["summary"]["month_end_balance"]
    assert "monthly_trend" in payload["charts"]


def test_monthly_report_empty_month_has_no_chart():
    payload = compute_monthly_report(_three_month_profile(), Month(2026, 2))
    assert payload["entries"] == []
    assert payload["charts"] == {}
