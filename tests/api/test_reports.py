"""
Tests for report API endpoints.
"""


def test_trial_balance_is_balanced(client):
    cash = client.post("/accounts", json={
        "code": "1000", "name": "Cash", "account_type": "ASSET",
    }).json()
    capital = client.post("/accounts", json={
        "code": "3000", "name": "Capital", "account_type": "EQUITY",
    }).json()
    client.post("/accounts", json={
        "code": "5000", "name": "Rent", "account_type": "EXPENSE",
    })
    client.post("/transactions", json={
        "description": "Owner investment",
        "transaction_date": "2024-01-02",
        "transaction_type": "JOURNAL",
        "total_amount": 1000,
        "entries": [
            {"account_id": cash["id"], "debit_amount": 1000},
            {"account_id": capital["id"], "credit_amount": 1000},
        ],
    })

    response = client.get("/reports/trial-balance")
    assert response.status_code == 200
    data = response.json()
    assert data["as_of"] == "2024-03-15"
    assert [r["account_code"] for r in data["rows"]] == ["1000", "3000"]
    assert data["totals"]["is_balanced"] is True
    assert float(data["totals"]["total_debit"]) == 1000.0


def test_trial_balance_before_any_activity(client):
    response = client.get("/reports/trial-balance", params={"as_of": "2023-12-31"})
    data = response.json()
    assert data["rows"] == []
    assert data["totals"]["is_balanced"] is True
