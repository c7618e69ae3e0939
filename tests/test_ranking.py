from __future__ import annotations

import pytest

from conftest import make_entry, make_profile
from ledger_core.metrics_ranking import SortConfig, broker_totals, comparison_table, compute_ranking, rank_brokers


def _broker(name: str, sales: int, leads_in: int = 10):
    return make_profile(name=name, entries=[make_entry("2026-01-10", new_leads=leads_in, signed_leads=sales)])


@pytest.fixture
def brokers():
    return [_broker("Zoe", 0), _broker("bruno", 5, 20), _broker("Ana", 5, 10), _broker("Caio", 3, 0)]


def test_ranking_excludes_zero_sales_and_sorts_descending(brokers):
    ranked = rank_brokers(brokers)

    assert ranked["total_sales"].tolist() == [5, 5, 3]
    assert "Zoe" not in ranked["broker_name"].tolist()
    # equal totals are ordered by name
    assert ranked["broker_name"].tolist() == ["Ana", "bruno", "Caio"]
    assert ranked["rank"].tolist() == [1, 2, 3]
    assert ranked["medal"].tolist() == ["gold", "silver", "bronze"]


def test_ranking_empty_store():
    assert rank_brokers([]).empty


def test_totals_include_repique_and_zero_lead_conversion():
    profile = make_profile(
        name="Ana",
        entries=[
            make_entry("2026-01-01", new_leads=6, repique_leads=2, signed_leads=2),
            make_entry("2026-01-02", new_leads=2),
        ],
    )
    totals = broker_totals([profile, _broker("Caio", 3, 0)]).set_index("broker_name")

    assert totals.loc["Ana", "total_leads_in"] == 10
    assert totals.loc["Ana", "conversion_rate"] == pytest.approx(20.0)
    assert totals.loc["Caio", "conversion_rate"] == 0.0


def test_comparison_defaults_to_sales_descending(brokers):
    table = comparison_table(brokers)
    assert table["total_sales"].tolist() == [5, 5, 3, 0]
    assert len(table) == 4


def test_comparison_sorts_by_selected_key(brokers):
    table = comparison_table(brokers, SortConfig(key="conversion_rate", direction="ascending"))
    assert table["broker_name"].tolist() == ["Caio", "Zoe", "bruno", "Ana"]


def test_sort_request_toggles_direction():
    sort = SortConfig()
    assert (sort.key, sort.direction) == ("total_sales", "descending")

    sort = sort.request("total_sales")
    assert sort.direction == "ascending"
    sort = sort.request("total_sales")
    assert sort.direction == "descending"

    sort = sort.request("total_leads_in")
    assert (sort.key, sort.direction) == ("total_leads_in", "ascending")
    assert sort.request("total_leads_in").direction == "descending"


def test_sort_request_rejects_unknown_key():
    with pytest.raises(ValueError):
        SortConfig().request("broker_name")


def test_compute_ranking_payload(brokers):
    payload = compute_ranking(brokers)

    assert payload["sort"] == {"key": "total_sales", "direction": "descending"}
    assert [r["broker_name"] for r in payload["ranking"]] == ["Ana", "bruno", "Caio"]
    assert len(payload["comparison"]) == 4
    assert "comparison" in payload["charts"]
