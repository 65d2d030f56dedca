"""
Tests for the HTTP API: session gate, error mapping and the main flows
"""
import pytest
from fastapi.testclient import TestClient

from fintrack.api.deps import get_db
from fintrack.main import app


@pytest.fixture
def client(session_factory):
    """Test client backed by the in-memory database"""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def authenticated_client(client):
    """Client with a signed-in session"""
    response = client.post(
        "/register",
        data={"email": "ann@example.com", "password": "secret1"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    return client


def create_account(client, name, balance):
    response = client.post("/api/v1/accounts/", json={"name": name, "initial_balance": balance})
    assert response.status_code == 201
    return response.json()["id"]


class TestSessionGate:
    def test_root_redirects_to_login(self, client):
        response = client.get("/", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/login"

    def test_api_requires_session(self, client):
        assert client.get("/api/v1/accounts/").status_code == 401

    def test_root_redirects_signed_in_user_to_dashboard(self, authenticated_client):
        response = authenticated_client.get("/", follow_redirects=False)
        assert response.headers["location"] == "/api/v1/dashboard"

    def test_logout_clears_session(self, authenticated_client):
        authenticated_client.get("/logout", follow_redirects=False)
        assert authenticated_client.get("/api/v1/accounts/").status_code == 401

    def test_login_with_wrong_password(self, authenticated_client):
        authenticated_client.get("/logout", follow_redirects=False)
        response = authenticated_client.post(
            "/login", data={"email": "ann@example.com", "password": "nope-nope"},
            follow_redirects=False,
        )
        assert response.status_code == 401

    def test_login_then_access(self, authenticated_client):
        authenticated_client.get("/logout", follow_redirects=False)
        response = authenticated_client.post(
            "/login", data={"email": "ann@example.com", "password": "secret1"},
            follow_redirects=False,
        )
        assert response.status_code == 302
        assert authenticated_client.get("/api/v1/accounts/").status_code == 200

    def test_duplicate_registration_conflicts(self, authenticated_client):
        response = authenticated_client.post(
            "/register", data={"email": "ann@example.com", "password": "secret1"},
            follow_redirects=False,
        )
        assert response.status_code == 409


class TestTransferApi:
    def test_transfer_and_idempotent_retry(self, authenticated_client):
        a = create_account(authenticated_client, "A", "1000")
        b = create_account(authenticated_client, "B", "500")
        body = {"from_account_id": a, "to_account_id": b, "amount": "200"}
        headers = {"Idempotency-Key": "tr-1"}

        first = authenticated_client.post("/api/v1/transactions/transfer", json=body, headers=headers)
        second = authenticated_client.post("/api/v1/transactions/transfer", json=body, headers=headers)

        assert first.status_code == 201
        assert first.json()["replayed"] is False
        assert second.json()["replayed"] is True
        assert second.json()["debit_transaction_id"] == first.json()["debit_transaction_id"]

        balances = {acc["name"]: acc["balance"] for acc in authenticated_client.get("/api/v1/accounts/").json()}
        assert balances == {"A": "800.00", "B": "700.00"}

        rows = authenticated_client.get("/api/v1/transactions/").json()
        assert len(rows) == 2
        assert {r["category_name"] for r in rows} == {"Transfer"}

    def test_same_account_is_bad_request(self, authenticated_client):
        a = create_account(authenticated_client, "A", "1000")
        response = authenticated_client.post(
            "/api/v1/transactions/transfer",
            json={"from_account_id": a, "to_account_id": a, "amount": "10"},
        )
        assert response.status_code == 400
        assert "must differ" in response.json()["detail"]

    def test_unknown_account_is_not_found(self, authenticated_client):
        a = create_account(authenticated_client, "A", "1000")
        response = authenticated_client.post(
            "/api/v1/transactions/transfer",
            json={"from_account_id": a, "to_account_id": 999, "amount": "10"},
        )
        assert response.status_code == 404


def test_budget_duplicate_is_conflict(authenticated_client):
    categories = authenticated_client.get("/api/v1/categories/", params={"type": "expense"}).json()
    food = next(c for c in categories if c["name"] == "Food")
    body = {"category_id": food["id"], "amount": "300", "month": 3, "year": 2026}

    created = authenticated_client.post("/api/v1/budgets/", json=body)
    assert created.status_code == 201
    assert created.json()["progress"] == 0
    assert authenticated_client.post("/api/v1/budgets/", json=body).status_code == 409


def test_expense_then_dashboard(authenticated_client):
    account_id = create_account(authenticated_client, "Main", "100")
    categories = authenticated_client.get("/api/v1/categories/").json()
    food = next(c for c in categories if c["name"] == "Food")

    response = authenticated_client.post("/api/v1/transactions/", json={
        "type": "expense", "amount": "25,50", "account_id": account_id, "category_id": food["id"],
    })
    assert response.status_code == 201
    assert response.json()["amount"] == "-25.50"

    dashboard = authenticated_client.get("/api/v1/dashboard").json()
    assert dashboard["summary"]["total_expense"] == "25.50"
    assert dashboard["summary"]["balance"] == "74.50"
    assert dashboard["expense_by_category"] == [{"name": "Food", "value": "25.50"}]


def test_goal_funding_endpoint(authenticated_client):
    goal = authenticated_client.post(
        "/api/v1/saving-goals/", json={"name": "Bike", "target_amount": "400"}
    ).json()

    response = authenticated_client.post(
        f"/api/v1/saving-goals/{goal['id']}/add-funds", json={"amount": "100"}
    )

    assert response.status_code == 201
    assert response.json()["goal"]["progress"] == 25.0
    assert response.json()["goal"]["current_amount"] == "100.00"


def test_recurring_run_endpoint(authenticated_client):
    account_id = create_account(authenticated_client, "Main", "0")
    created = authenticated_client.post("/api/v1/recurring-transactions/", json={
        "type": "income", "amount": "1000", "frequency": "monthly",
        "start_date": "2020-01-15", "account_id": account_id, "description": "Rent income",
    })
    assert created.status_code == 201
    assert created.json()["next_due_date"] == "2020-01-15"

    run = authenticated_client.post("/api/v1/recurring-transactions/run").json()
    assert run["created"] > 70

    again = authenticated_client.post("/api/v1/recurring-transactions/run").json()
    assert again["created"] == 0


def test_health(client):
    assert client.get("/health").text == "ok"
