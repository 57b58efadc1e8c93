from horde.core.config import settings
from horde.db import expenses as expenses_db

DEV = "/api/v1/user/dev"


def test_seed_budget_with_expenses(client, user, auth_headers):
    response = client.post(f"{DEV}/budget-with-exp", json={"year": 2023, "month": 2}, headers=auth_headers)
    assert response.status_code == 201
    body = response.json()

    budget = body["budget"]
    assert (budget["year"], budget["month"]) == (2023, 2)
    assert 3 <= len(budget["categories"]) <= 8
    assert body["expenses_count"] >= 15 * len(budget["categories"])
    assert budget["amount_spent"] > 0

    stored = expenses_db.get_expenses_for_user(user[0]["user_id"], budget_id=budget["budget_id"])
    assert len(stored) == body["expenses_count"]
    assert all(e["expense_date"].startswith("2023-02-") for e in stored)

    again = client.post(f"{DEV}/budget-with-exp", json={"year": 2023, "month": 2}, headers=auth_headers)
    assert again.status_code == 400


def test_seed_expenses_and_delete_all(client, user, auth_headers, budget):
    response = client.post(f"{DEV}/expenses/create/{budget['budget_id']}", headers=auth_headers)
    assert response.status_code == 200
    created = response.json()["expenses_count"]
    assert created >= 30

    deleted = client.delete(f"{DEV}/all-expenses", headers=auth_headers).json()
    assert deleted["deleted_count"] == created
    assert expenses_db.get_expenses_for_user(user[0]["user_id"]) == []

    refreshed = client.get(f"/api/v1/user/budget/d/{budget['budget_id']}", headers=auth_headers).json()["budget"]
    assert refreshed["amount_spent"] == 0


def test_dev_routes_disabled_in_production(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    response = client.post(f"{DEV}/budget-with-exp", json={}, headers=auth_headers)
    assert response.status_code == 403
