import inspect

import pytest
from fastapi.testclient import TestClient

import app.routers.dashboard as dashboard_router
import app.routers.ro_parser as ro_parser_router
from main import app


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    assert client.get("/").json()["status"] == "healthy"
    assert client.get("/health").json()["status"] == "healthy"


def test_parse_single_record(client, raw_record):
    response = client.post("/api/ro-parser/", json={"record": raw_record})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["header"]["tenantId"] == "D100"
    assert body["data"]["operations"][0]["laborEntries"][0]["technicianId"] == "T1"


def test_parse_bare_record_without_tenant(client, raw_record):
    raw_record["DV Dealer ID"] = ""
    raw_record["Vendor Dealer ID"] = ""

    body = client.post("/api/ro-parser/", json=raw_record).json()

    assert body["success"] is False
    assert body["data"] is None
    assert body["errors"][0]["field"] == "general"
    assert body["errors"][0]["type"] == "missing_tenant"


def test_parse_batch(client, raw_record):
    bad = dict(raw_record, **{"RO Number": ""})

    response = client.post("/api/ro-parser/", json={"records": [raw_record, bad]})

    assert response.status_code == 200
    batch = response.json()["batchResult"]
    assert batch["totalRecords"] == 2
    assert batch["successfulRecords"] == 1
    assert batch["failedRecords"] == 1
    assert batch["summary"]["tenants"] == ["D100"]


def test_parse_rejects_empty_batch(client):
    assert client.post("/api/ro-parser/", json={"records": []}).status_code == 400


def test_parse_rejects_invalid_record(client):
    assert client.post("/api/ro-parser/", json={"record": "nope"}).status_code == 400


def test_parse_rejects_oversized_batch(client, raw_record, monkeypatch):
    monkeypatch.setattr(ro_parser_router, "RO_PARSER_MAX_BATCH", 1)
    response = client.post("/api/ro-parser/", json={"records": [raw_record, raw_record]})
    assert response.status_code == 413


def test_parser_info(client):
    assert client.get("/api/ro-parser/").json()["name"] == "RO Parser API"


def test_process_dashboard(client, service_record):
    record = service_record(
        customer_labor_sale="100.00",
        customer_labor_cost="60.00",
        customer_total_sale="150.00",
        customer_total_cost="100.00",
    )
    payload = {
        "requestId": "req-1",
        "records": [record],
        "kpiResults": {"kpis": {"hrs_per_ro": {"value": 2.1, "unit": "hrs"}}},
    }

    response = client.post("/api/dashboard/process", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["kpis"]["laborGPPercent"] == 40.0
    assert body["kpis"]["hoursPerRO"] == 2.1
    assert body["grossProfit"]["months"] == ["Jul 2"]
    assert body["technicians"]["names"] == ["Dana Reyes"]


def test_cpu_bound_handlers_run_in_threadpool():
    assert not inspect.iscoroutinefunction(ro_parser_router.parse_records)
    assert not inspect.iscoroutinefunction(dashboard_router.process_dashboard)
