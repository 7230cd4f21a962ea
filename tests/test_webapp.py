import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from webapp.app import ScheduleRequest, app, calculate_schedule


@pytest.fixture
def client():
    return TestClient(app)


def test_schedule_endpoint_returns_rows_and_totals(client):
    response = client.post(
        "/api/schedule",
        json={
            "principal": 100_000,
            "annual_interest_rate": 0.05,
            "periods": 360,
            "schedule_limit": 3,
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["base_payment"] == pytest.approx(536.82)
    assert body["periods_paid"] == 360
    assert len(body["schedule"]) == 3
    first = body["schedule"][0]
    assert first["period"] == 1
    assert first["date"] is None
    assert first["interest"] == pytest.approx(416.67)
    assert first["principal"] == pytest.approx(120.15)
    assert first["extra_source"] == "none"
    assert body["totals"]["principal"] == pytest.approx(100_000, abs=3.60)
    assert body["interest_saved"] == pytest.approx(0)
    assert body["periods_saved"] == 0


def test_extra_payments_report_savings(client):
    response = client.post(
        "/api/schedule",
        json={
            "principal": 10_000,
            "annual_interest_rate": 0.05,
            "periods": 24,
            "extra_every": {"6": 1000},
            "start_month": 6,
            "start_year": 2015,
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["periods_paid"] == 20
    assert body["periods_saved"] == 4
    assert body["interest_saved"] > 0
    assert body["totals"]["interest"] < body["baseline_totals"]["interest"]
    sixth = body["schedule"][5]
    assert sixth["extra"] == pytest.approx(1000)
    assert sixth["extra_source"] == "recurring"
    assert body["schedule"][0]["date"] == "Jun 2015"
    assert body["schedule"][7]["date"] == "Jan 2016"


def test_zero_rate_request():
    response = calculate_schedule(
        ScheduleRequest(principal=1200, annual_interest_rate=0, periods=12)
    )
    assert response.base_payment == pytest.approx(100)
    assert all(row.interest == 0 for row in response.schedule)
    assert response.schedule[-1].balance == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"principal": 0, "annual_interest_rate": 0.05, "periods": 12},
        {"principal": 1000, "annual_interest_rate": -0.01, "periods": 12},
        {"principal": 1000, "annual_interest_rate": 0.05, "periods": 0},
        {"principal": 1000, "annual_interest_rate": 0.05, "periods": 12, "start_month": 3},
        {"principal": 1000, "annual_interest_rate": 0.05, "periods": 12, "start_year": 2020},
    ],
)
def test_invalid_requests_are_rejected(client, payload):
    response = client.post("/api/schedule", json=payload)
    assert response.status_code == 422


@pytest.mark.parametrize(
    "rules",
    [{"extra_at": {"0": 100}}, {"extra_every": {"3": -50}}],
)
def test_invalid_extra_payments_return_bad_request(client, rules):
    payload = {"principal": 1000, "annual_interest_rate": 0.05, "periods": 12, **rules}
    response = client.post("/api/schedule", json=payload)
    assert response.status_code == 400


def test_index_page_is_served(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Amortization Schedule" in response.text


def test_truncated_schedule_still_reports_full_run(client):
    response = client.post(
        "/api/schedule",
        json={
            "principal": 10_000,
            "annual_interest_rate": 0.05,
            "periods": 24,
            "extra_every": {"6": 1000},
            "schedule_limit": 3,
        },
    )
    body = response.json()
    assert len(body["schedule"]) == 3
    assert body["periods_paid"] == 20
    assert body["totals"]["principal"] == pytest.approx(10_000)
    assert body["interest_saved"] == pytest.approx(
        body["baseline_totals"]["interest"] - body["totals"]["interest"]
    )
