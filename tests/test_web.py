import pytest

from loan_sim_web.app import app, parse_form_list


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_parse_form_list():
    assert parse_form_list("2:100, 5:200\n7:300,,") == ["2:100", "5:200", "7:300"]
    assert parse_form_list("") == []


def test_api_schedule(client):
    response = client.post("/api/schedule", json={"principal": "1200", "rate": "0", "term": 12})

    assert response.status_code == 200
    data = response.get_json()
    assert data["summary"]["total_interest"] == "0.00"
    assert data["summary"]["total_paid"] == "1200.00"
    assert len(data["schedule"]) == 12
    assert data["schedule"][0] == {
        "month": 1,
        "principal": "100.00",
        "interest": "0.00",
        "payment": "100.00",
        "balance": "1100.00",
    }


def test_api_schedule_with_overpayments(client):
    response = client.post(
        "/api/schedule",
        json={"principal": "10000", "rate": "5", "term": 12, "strategy": "term", "payments": ["2:5000"]},
    )

    assert response.status_code == 200
    assert response.get_json()["summary"]["payments_made"] < 8


def test_api_schedule_reports_error_kind(client):
    response = client.post("/api/schedule", json={"principal": "-100", "rate": "5", "term": 12})

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_principal"


def test_api_schedule_rejects_unparseable_input(client):
    response = client.post("/api/schedule", json={"principal": "abc", "rate": "5", "term": 12})

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_argument"


def test_api_schedule_rejects_huge_term(client):
    response = client.post(
        "/api/schedule", json={"principal": "1000", "rate": "5", "term": 20_000_000, "monthly_payment": "10"}
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_months"


def test_api_schedule_rejects_non_list_payments(client):
    response = client.post("/api/schedule", json={"principal": "1000", "rate": "5", "term": 12, "payments": 5})

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_argument"


def test_api_schedule_requires_json_object(client):
    response = client.post("/api/schedule", data="not json", content_type="text/plain")
    assert response.status_code == 400


def test_index_get(client):
    response = client.get("/")
    assert response.status_code == 200
    assert b"Loan Simulator" in response.data


def test_index_post_renders_schedule(client):
    response = client.post("/", data={"principal": "1200", "rate": "0", "term": "12", "loan_type": "annuity"})

    assert response.status_code == 200
    assert b"Amortization Schedule" in response.data
    assert b"1100.00" in response.data


def test_index_post_shows_error(client):
    response = client.post("/", data={"principal": "100000", "rate": "5", "term": "12", "monthly_payment": "10"})

    assert response.status_code == 200
    assert b"Payment is smaller than accrued interest" in response.data
