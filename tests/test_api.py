from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ledger_api.main import app
from ledger_core.state import get_store


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _seed(client: TestClient) -> None:
    assert client.post("/brokers", json={"broker_name": "Ana", "initial_leads": 100, "monthly_sales_goal": 2}).status_code == 201
    client.put("/brokers/Ana/entries", json={"date": "2026-01-05", "new_leads": 10, "discarded_leads": 2, "signed_leads": 1})
    client.put("/brokers/Ana/entries", json={"date": "2026-01-06", "new_leads": 5, "repique_leads": 3, "signed_leads": 2})


def test_add_and_list_brokers(client):
    _seed(client)
    body = client.get("/brokers").json()

    assert [b["brokerName"] for b in body["brokers"]] == ["Ana"]
    assert body["brokers"][0]["currentBalance"] == 113


def test_duplicate_name_is_conflict(client):
    _seed(client)
    resp = client.post("/brokers", json={"broker_name": "ana", "initial_leads": 1})
    assert resp.status_code == 409
    assert resp.json()["type"] == "DuplicateName"


def test_negative_counter_is_bad_request(client):
    _seed(client)
    resp = client.put("/brokers/Ana/entries", json={"date": "2026-01-07", "new_leads": -1})
    assert resp.status_code == 400
    assert resp.json()["field"] == "new_leads"


def test_history_and_monthly(client):
    _seed(client)
    history = client.get("/brokers/Ana/history").json()
    assert [e["date"] for e in history["entries"]] == ["2026-01-06", "2026-01-05"]

    monthly = client.get("/brokers/Ana/monthly", params={"month": "2026-01"}).json()
    assert monthly["summary"]["month_start_balance"] == 100
    assert monthly["summary"]["month_end_balance"] == 113
    assert monthly["summary"]["conversion_rate_display"] == "16.7"
    assert monthly["goal"]["progress_pct"] == 150

    empty = client.get("/brokers/Ana/monthly", params={"month": "2026-02"}).json()
    assert empty["summary"]["conversion_rate_display"] == "0.0"
    assert empty["summary"]["month_start_balance"] == empty["summary"]["month_end_balance"] == 113


def test_bad_month_and_unknown_broker(client):
    _seed(client)
    assert client.get("/brokers/Ana/monthly", params={"month": "January"}).status_code == 400
    assert client.get("/brokers/Ghost/history").status_code == 404


def test_bulk_edit_and_delete_entry(client):
    _seed(client)
    resp = client.post(
        "/brokers/Ana/entries/bulk",
        json={"start": "2026-01-06", "end": "2026-01-08", "values": {"local_visits": 1}},
    )
    entries = {e["date"]: e for e in resp.json()["broker"]["dailyEntries"]}
    assert sorted(entries) == ["2026-01-05", "2026-01-06", "2026-01-07", "2026-01-08"]
    assert entries["2026-01-06"]["newLeads"] == 5
    assert entries["2026-01-07"]["localVisits"] == 1

    resp = client.delete("/brokers/Ana/entries/2026-01-08")
    assert "2026-01-08" not in [e["date"] for e in resp.json()["broker"]["dailyEntries"]]


def test_rename_and_delete(client):
    _seed(client)
    resp = client.put("/brokers/Ana", json={"broker_name": "Ana Paula", "initial_leads": 100})
    assert resp.json()["broker"]["brokerName"] == "Ana Paula"
    assert len(resp.json()["broker"]["dailyEntries"]) == 2

    assert client.delete("/brokers/Ana Paula").json() == {"deleted": True}
    assert client.get("/brokers").json() == {"brokers": []}


def test_ranking_endpoint(client):
    _seed(client)
    client.post("/brokers", json={"broker_name": "Bruno", "initial_leads": 0})
    body = client.get("/ranking", params={"sort_key": "total_leads_in", "direction": "ascending"}).json()

    assert [r["broker_name"] for r in body["ranking"]] == ["Ana"]
    assert [r["broker_name"] for r in body["comparison"]] == ["Bruno", "Ana"]
    assert body["sort"] == {"key": "total_leads_in", "direction": "ascending"}


def test_backup_import_roundtrip(client):
    _seed(client)
    backup = client.get("/export/backup")
    assert backup.headers["content-type"].startswith("application/json")
    assert "backup_performance_leads_" in backup.headers["content-disposition"]

    client.delete("/brokers/Ana")
    assert client.post("/import", json=backup.json()).json() == {"restored": 1}
    assert client.get("/brokers/Ana/history").status_code == 200


def test_import_rejects_malformed_payload(client):
    _seed(client)
    resp = client.post("/import", json=["Ana", "Bruno"])
    assert resp.status_code == 400
    assert resp.json()["type"] == "InvalidFormat"
    assert [b["brokerName"] for b in client.get("/brokers").json()["brokers"]] == ["Ana"]


def test_report_csv_endpoint(client):
    _seed(client)
    resp = client.get("/export/report/Ana", params={"month": "2026-01"})

    assert resp.status_code == 200
    assert resp.content.startswith(b"\xef\xbb\xbf")
    assert "Historico-Ana-2026-01.csv" in resp.headers["content-disposition"]
    assert resp.content.decode("utf-8-sig").strip().split("\n")[-1].endswith(",113")


def test_import_rejects_non_finite_numbers(client):
    _seed(client)
    resp = client.post(
        "/import",
        content='[{"brokerName": "Ana", "initialLeads": Infinity, "dailyEntries": []}]',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["type"] == "InvalidFormat"


def test_report_pdf_endpoint(client):
    _seed(client)
    resp = client.get("/export/report/Ana/pdf", params={"month": "2026-01"})

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")
    assert "Relatorio-Ana-January-2026.pdf" in resp.headers["content-disposition"]
    assert client.get("/export/report/Ghost/pdf").status_code == 404


def test_report_csv_bad_month_is_bad_request(client):
    _seed(client)
    resp = client.get("/export/report/Ana", params={"month": "2026-13"})
    assert resp.status_code == 400
