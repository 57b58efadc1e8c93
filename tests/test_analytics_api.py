from conftest import BUDGET_PAYLOAD, category_id

ANALYTICS = "/api/v1/user/analytics"


def _spend(client, headers, budget, name, amount, day):
    response = client.post(
        "/api/v1/user/expense",
        json={
            "budget_id": budget["budget_id"],
            "category_id": category_id(budget, name),
            "amount": amount,
            "description": f"{name} on day {day}",
            "expense_date": f"{budget['year']}-{budget['month']:02d}-{day:02d}T12:00:00",
        },
        headers=headers,
    )
    assert response.status_code == 201


def test_current_month_summary(client, auth_headers, budget):
    april = client.post(
        "/api/v1/user/budget", json={**BUDGET_PAYLOAD, "month": 4}, headers=auth_headers
    ).json()["budget"]
    _spend(client, auth_headers, april, "Rent", 500, 1)

    _spend(client, auth_headers, budget, "Groceries", 50, 2)
    _spend(client, auth_headers, budget, "Groceries", 100, 9)
    _spend(client, auth_headers, budget, "Rent", 600, 3)

    response = client.get(f"{ANALYTICS}/current-month", params={"year": 2024, "month": 5}, headers=auth_headers)
    assert response.status_code == 200
    body = response.json()

    assert body["month_name"] == "May"
    assert body["total_expenses_count"] == 3
    assert body["total_expenses_sum"] == 750.0
    assert body["avg_expense_amount"] == 250.0
    assert body["largest_transaction"]["amount"] == 600
    assert body["top_category"]["category_name"] == "Rent"
    assert body["monthly_trend"] == 50.0
    assert [w["week"] for w in body["weekly_stats"]["weeks"]] == [1, 2]
    assert len(body["recent_transactions"]) == 3


def test_current_month_without_expenses(client, auth_headers):
    body = client.get(f"{ANALYTICS}/current-month", params={"year": 2024, "month": 1}, headers=auth_headers).json()
    assert body["total_expenses_count"] == 0
    assert body["largest_transaction"] is None
    assert body["top_category"] is None
    assert body["monthly_trend"] == 0.0


def test_budgets_overview(client, auth_headers, budget):
    client.post("/api/v1/user/budget", json={**BUDGET_PAYLOAD, "year": 2023}, headers=auth_headers)
    _spend(client, auth_headers, budget, "Rent", 700, 5)

    body = client.get(f"{ANALYTICS}/budgets", params={"year": 2024}, headers=auth_headers).json()
    assert body["year"] == 2024
    assert len(body["budgets"]) == 1
    assert body["totals"]["amount_budgeted"] == 1400.0
    assert body["totals"]["amount_spent"] == 700.0
    assert body["totals"]["usage_percentage"] == 50.0


def test_budget_insights(client, auth_headers, budget):
    _spend(client, auth_headers, budget, "Groceries", 450, 4)
    _spend(client, auth_headers, budget, "Rent", 900, 1)

    response = client.get(f"{ANALYTICS}/budget/{budget['budget_id']}/insights", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total_spent"] == 1350.0
    assert body["overspending_categories"] == {"Groceries": 450.0}
    assert body["suggested_budgets"]["Groceries"] == 517.5

    assert client.get(f"{ANALYTICS}/budget/missing/insights", headers=auth_headers).status_code == 404
