"""
Tests for account API endpoints.

These test the HTTP layer: status codes, response format
and error mapping. Business rules are tested in
tests/services.
"""


def create_account(client, code, account_type="ASSET", **extra):
    return client.post("/accounts", json={
        "code": code,
        "name": f"Account {code}",
        "account_type": account_type,
        **extra,
    })


def post_sale(client, cash_id, sales_id, amount, on="2024-03-01"):
    return client.post("/transactions", json={
        "description": "Cash sale",
        "transaction_date": on,
        "transaction_type": "JOURNAL",
        "total_amount": amount,
        "entries": [
            {"account_id": cash_id, "debit_amount": amount},
            {"account_id": sales_id, "credit_amount": amount},
        ],
    })


class TestCreateAccount:

    def test_create_account_returns_201(self, client):
        response = create_account(client, "1000")
        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "1000"
        assert data["account_type"] == "ASSET"
        assert data["currency"] == "USD"
        assert data["is_active"] is True

    def test_duplicate_code_returns_400(self, client):
        create_account(client, "1000")
        response = create_account(client, "1000")
        assert response.status_code == 400
        assert "already exists" in response.json()["detail"]

    def test_unknown_account_type_returns_422(self, client):
        response = create_account(client, "1000", account_type="CONTRA")
        assert response.status_code == 422


class TestReadAndUpdate:

    def test_list_accounts_ordered_by_code(self, client):
        create_account(client, "2000", "LIABILITY")
        create_account(client, "1000")

        response = client.get("/accounts")
        assert [a["code"] for a in response.json()] == ["1000", "2000"]

        response = client.get("/accounts", params={"account_type": "LIABILITY"})
        assert [a["code"] for a in response.json()] == ["2000"]

    def test_get_missing_account_returns_404(self, client):
        response = client.get("/accounts/999")
        assert response.status_code == 404

    def test_patch_deactivates(self, client):
        account_id = create_account(client, "1000").json()["id"]

        response = client.patch(f"/accounts/{account_id}", json={"is_active": False})
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = client.get("/accounts", params={"active_only": True})
        assert response.json() == []

    def test_patch_ignores_account_type(self, client):
        account_id = create_account(client, "1000").json()["id"]

        response = client.patch(
            f"/accounts/{account_id}", json={"account_type": "EXPENSE"}
        )
        assert response.status_code == 200
        assert response.json()["account_type"] == "ASSET"


class TestBalanceAndLedger:

    def test_balance_after_sale(self, client):
        cash_id = create_account(client, "1000").json()["id"]
        sales_id = create_account(client, "4000", "REVENUE").json()["id"]
        post_sale(client, cash_id, sales_id, 500)

        response = client.get(f"/accounts/{cash_id}/balance")
        assert response.status_code == 200
        assert float(response.json()["balance"]) == 500.0

        response = client.get(f"/accounts/{sales_id}/balance")
        assert float(response.json()["balance"]) == 500.0

    def test_balance_as_of(self, client):
        cash_id = create_account(client, "1000").json()["id"]
        sales_id = create_account(client, "4000", "REVENUE").json()["id"]
        post_sale(client, cash_id, sales_id, 100, on="2024-01-10")
        post_sale(client, cash_id, sales_id, 50, on="2024-02-10")

        response = client.get(
            f"/accounts/{cash_id}/balance", params={"as_of": "2024-01-31"}
        )
        data = response.json()
        assert float(data["balance"]) == 100.0
        assert data["as_of"] == "2024-01-31"

    def test_balance_of_missing_account_returns_404(self, client):
        response = client.get("/accounts/999/balance")
        assert response.status_code == 404

    def test_general_ledger(self, client):
        cash_id = create_account(client, "1000").json()["id"]
        sales_id = create_account(client, "4000", "REVENUE").json()["id"]
        post_sale(client, cash_id, sales_id, 100, on="2024-01-10")
        post_sale(client, cash_id, sales_id, 50, on="2024-02-10")

        response = client.get(f"/accounts/{cash_id}/ledger", params={
            "start": "2024-02-01", "end": "2024-02-29",
        })
        assert response.status_code == 200
        data = response.json()
        assert float(data["opening_balance"]) == 100.0
        assert [float(r["running_balance"]) for r in data["rows"]] == [150.0]

    def test_general_ledger_from_the_first_representable_day(self, client):
        cash_id = create_account(client, "1000", opening_balance=25).json()["id"]
        sales_id = create_account(client, "4000", "REVENUE").json()["id"]
        post_sale(client, cash_id, sales_id, 100, on="2024-01-10")

        response = client.get(f"/accounts/{cash_id}/ledger", params={
            "start": "0001-01-01", "end": "2024-03-31",
        })
        assert response.status_code == 200
        data = response.json()
        assert float(data["opening_balance"]) == 25.0
        assert [float(r["running_balance"]) for r in data["rows"]] == [125.0]

    def test_general_ledger_bad_window_returns_400(self, client):
        cash_id = create_account(client, "1000").json()["id"]

        response = client.get(f"/accounts/{cash_id}/ledger", params={
            "start": "2024-03-01", "end": "2024-02-01",
        })
        assert response.status_code == 400
