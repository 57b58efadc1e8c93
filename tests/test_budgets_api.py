from datetime import datetime

from horde.db import expenses as expenses_db
from horde.db import notifications as notifications_db

from conftest import BUDGET_PAYLOAD, category_id

BUDGETS = "/api/v1/user/budget"


def _add_expense(client, headers, budget, name, amount, day=3):
    response = client.post(
        "/api/v1/user/expense",
        json={
            "budget_id": budget["budget_id"],
            "category_id": category_id(budget, name),
            "amount": amount,
            "description": f"{name} spend",
            "expense_date": f"{budget['year']}-{budget['month']:02d}-{day:02d}T10:00:00",
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["expense"]


def test_create_budget(client, user, budget):
    assert budget["currency_sym"] == "$"
    assert budget["amount_budgeted"] == 1400.0
    assert budget["total_income"] == 4000.0
    assert {c["key"] for c in budget["categories"]} == {"2024-05-groceries", "2024-05-rent"}
    assert budget["income_sources"][0]["contribution"]["in_percent"] == "75.00%"
    assert budget["income_sources"][1]["frequency"] == "one-time"

    notifications = notifications_db.get_notifications_for_user(user[0]["user_id"])
    assert notifications[0]["type"] == "budget_created"
    assert notifications[0]["message"] == "Your budget for May 2024 has been created successfully."


def test_one_budget_per_month(client, auth_headers, budget):
    response = client.post(BUDGETS, json=BUDGET_PAYLOAD, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "A budget for selected month and year has already been created"


def test_same_month_allowed_for_another_user(client, make_user, budget):
    _, other_headers = make_user(email="bob@example.com", full_name="Bob")
    assert client.post(BUDGETS, json=BUDGET_PAYLOAD, headers=other_headers).status_code == 201


def test_duplicate_category_names_in_request(client, auth_headers):
    payload = {
        **BUDGET_PAYLOAD,
        "categories": [{"name": "Food", "amount_budgeted": 1}, {"name": " food", "amount_budgeted": 2}],
    }
    response = client.post(BUDGETS, json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"]["categories"] == ["food"]


def test_budget_requires_categories_and_sources(client, auth_headers):
    response = client.post(BUDGETS, json={**BUDGET_PAYLOAD, "categories": []}, headers=auth_headers)
    assert response.status_code == 422


def test_year_and_month_default_to_now(client, auth_headers):
    payload = {k: v for k, v in BUDGET_PAYLOAD.items() if k not in ("year", "month")}
    created = client.post(BUDGETS, json=payload, headers=auth_headers).json()["budget"]

    now = datetime.utcnow()
    assert (created["year"], created["month"]) == (now.year, now.month)
    current = client.get(f"{BUDGETS}/current-budget", headers=auth_headers)
    assert current.json()["budget"]["budget_id"] == created["budget_id"]


def test_current_budget_missing(client, auth_headers, budget):
    response = client.get(f"{BUDGETS}/current-budget", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "No budget created for this month."


def test_list_budgets_with_filters_and_pagination(client, auth_headers):
    for month in (1, 2, 3):
        payload = {**BUDGET_PAYLOAD, "month": month}
        created = client.post(BUDGETS, json=payload, headers=auth_headers).json()["budget"]
        if month == 2:
            _add_expense(client, auth_headers, created, "Rent", 1200)

    page = client.get(BUDGETS, params={"limit": 2, "sort_field": "year", "sort_order": "asc"}, headers=auth_headers).json()
    assert [b["month"] for b in page["budgets"]] == [1, 2]
    assert page["pagination"] == {
        "total_items_count": 3,
        "total_pages": 2,
        "current_page_count": 2,
        "page": 1,
        "limit": 2,
    }

    unused = client.get(BUDGETS, params={"amount_filter": "unused"}, headers=auth_headers).json()
    assert sorted(b["month"] for b in unused["budgets"]) == [1, 3]

    under = client.get(BUDGETS, params={"amount_filter": "under"}, headers=auth_headers).json()
    assert [b["month"] for b in under["budgets"]] == [2]

    assert client.get(BUDGETS, params={"limit": 101}, headers=auth_headers).status_code == 422


def test_budgets_are_private(client, make_user, budget):
    _, other_headers = make_user(email="eve@example.com", full_name="Eve")
    assert client.get(f"{BUDGETS}/d/{budget['budget_id']}", headers=other_headers).status_code == 404
    assert client.delete(f"{BUDGETS}/d/{budget['budget_id']}", headers=other_headers).status_code == 404


def test_read_budget_refreshes_statistics(client, user, auth_headers, budget):
    _add_expense(client, auth_headers, budget, "Groceries", 40)
    # Written behind the API's back, so only a refresh picks it up
    expenses_db.put_expense({
        "user_id": user[0]["user_id"],
        "expense_id": "manual",
        "budget_id": budget["budget_id"],
        "category_id": category_id(budget, "Groceries"),
        "amount": 60.0,
        "description": "Market",
        "expense_date": "2024-05-04T09:00:00",
        "year": 2024,
        "month": 5,
    })

    fresh = client.get(f"{BUDGETS}/d/{budget['budget_id']}", headers=auth_headers).json()["budget"]
    groceries = next(c for c in fresh["categories"] if c["name"] == "Groceries")
    assert groceries["amount_spent"] == 100.0
    assert groceries["expenses_stats"]["count"] == 2
    assert groceries["expenses_stats"]["max_amount"] == 60.0
    assert fresh["amount_spent"] == 100.0


def test_update_budget_moves_month_and_keys(client, user, auth_headers, budget):
    expense = _add_expense(client, auth_headers, budget, "Rent", 500)

    response = client.put(f"{BUDGETS}/d/{budget['budget_id']}", json={"month": 7, "currency": "GBP"}, headers=auth_headers)
    assert response.status_code == 200
    updated = response.json()["budget"]
    assert updated["month"] == 7
    assert updated["currency_sym"] == "£"
    assert {c["key"] for c in updated["categories"]} == {"2024-07-groceries", "2024-07-rent"}

    moved = expenses_db.get_expense(user[0]["user_id"], expense["expense_id"])
    assert moved["month"] == 7


def test_update_budget_into_occupied_month(client, auth_headers, budget):
    client.post(BUDGETS, json={**BUDGET_PAYLOAD, "month": 6}, headers=auth_headers)
    response = client.put(f"{BUDGETS}/d/{budget['budget_id']}", json={"month": 6}, headers=auth_headers)
    assert response.status_code == 400


def test_update_budget_needs_a_field(client, auth_headers, budget):
    assert client.put(f"{BUDGETS}/d/{budget['budget_id']}", json={}, headers=auth_headers).status_code == 400


def test_delete_budget_cascades(client, user, auth_headers, budget):
    _add_expense(client, auth_headers, budget, "Rent", 100)
    _add_expense(client, auth_headers, budget, "Groceries", 20)

    response = client.delete(f"{BUDGETS}/d/{budget['budget_id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["deleted_expenses"] == 2
    assert expenses_db.get_expenses_for_user(user[0]["user_id"]) == []
    assert client.get(f"{BUDGETS}/d/{budget['budget_id']}", headers=auth_headers).status_code == 404

    types = [n["type"] for n in notifications_db.get_notifications_for_user(user[0]["user_id"])]
    assert "budget_deleted" in types


def test_add_categories(client, auth_headers, budget):
    url = f"{BUDGETS}/d/{budget['budget_id']}/category"

    response = client.post(url, json=[{"name": "Travel", "amount_budgeted": 200}], headers=auth_headers)
    assert response.status_code == 201
    travel = next(c for c in response.json()["budget"]["categories"] if c["name"] == "Travel")
    assert travel["key"] == "2024-05-travel"

    clash = client.post(url, json=[{"name": "RENT", "amount_budgeted": 1}, {"name": "Gym", "amount_budgeted": 1}], headers=auth_headers)
    assert clash.status_code == 400
    assert clash.json()["detail"]["categories"] == ["RENT"]

    assert client.post(url, json=[], headers=auth_headers).status_code == 400


def test_update_category(client, auth_headers, budget):
    groceries = category_id(budget, "Groceries")
    url = f"{BUDGETS}/d/{budget['budget_id']}/category/{groceries}"

    renamed = client.put(url, json={"name": "Food Shopping", "amount_budgeted": 450}, headers=auth_headers)
    assert renamed.status_code == 200
    category = next(c for c in renamed.json()["budget"]["categories"] if c["category_id"] == groceries)
    assert category["key"] == "2024-05-food-shopping"
    assert category["amount_budgeted"] == 450

    clash = client.put(url, json={"name": "rent"}, headers=auth_headers)
    assert clash.status_code == 400

    missing = client.put(f"{BUDGETS}/d/{budget['budget_id']}/category/nope", json={"name": "X"}, headers=auth_headers)
    assert missing.status_code == 404


def test_delete_category_cascades(client, user, auth_headers, budget):
    _add_expense(client, auth_headers, budget, "Groceries", 30)
    _add_expense(client, auth_headers, budget, "Rent", 300)
    groceries = category_id(budget, "Groceries")

    response = client.delete(f"{BUDGETS}/d/{budget['budget_id']}/category/{groceries}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["deleted_expenses"] == 1
    assert [c["name"] for c in response.json()["budget"]["categories"]] == ["Rent"]

    remaining = expenses_db.get_expenses_for_user(user[0]["user_id"])
    assert [e["amount"] for e in remaining] == [300]


def test_income_sources(client, auth_headers, budget):
    base = f"{BUDGETS}/d/{budget['budget_id']}"

    added = client.post(f"{base}/source", json=[{"name": "Dividends", "amount": 500}], headers=auth_headers)
    assert added.status_code == 201
    assert client.post(f"{base}/source", json=[{"name": "salary", "amount": 1}], headers=auth_headers).status_code == 400

    sources = client.get(f"{base}/income-sources", headers=auth_headers).json()
    assert sources["total_income"] == 4500.0
    dividends = next(s for s in sources["income_sources"] if s["name"] == "Dividends")
    assert dividends["recurring"] is True and dividends["frequency"] == "monthly"

    updated = client.put(f"{base}/source/{dividends['source_id']}", json={"amount": 1000}, headers=auth_headers)
    assert updated.json()["budget"]["total_income"] == 5000.0
    clash = client.put(f"{base}/source/{dividends['source_id']}", json={"name": "Freelance"}, headers=auth_headers)
    assert clash.status_code == 400

    deleted = client.delete(f"{base}/source/{dividends['source_id']}", headers=auth_headers)
    assert deleted.json()["budget"]["total_income"] == 4000.0
    assert client.delete(f"{base}/source/{dividends['source_id']}", headers=auth_headers).status_code == 404


def test_all_categories(client, auth_headers, budget):
    response = client.get(f"{BUDGETS}/d/{budget['budget_id']}/all-categories", headers=auth_headers)
    rent = next(c for c in response.json()["categories"] if c["name"] == "Rent")
    assert rent["overall_contribution"] == {"in_percent": "71.43%", "in_number": 71.43}


def test_new_budget_defaults(client, auth_headers, budget):
    client.post(BUDGETS, json={**BUDGET_PAYLOAD, "month": 6}, headers=auth_headers)

    defaults = client.get(f"{BUDGETS}/new-budget-defaults", headers=auth_headers).json()
    assert [c["name"] for c in defaults["recurring_categories"]] == ["Groceries", "Rent"]
    assert defaults["recurring_categories"][0]["most_recent_occurrence"]["month"] == 6
    assert {s["name"] for s in defaults["most_recent_income_sources"]} == {"Salary", "Freelance"}


def test_blank_names_are_rejected_on_update(client, auth_headers, budget):
    base = f"{BUDGETS}/d/{budget['budget_id']}"
    groceries = category_id(budget, "Groceries")
    salary = next(s["source_id"] for s in budget["income_sources"] if s["name"] == "Salary")

    assert client.put(f"{base}/category/{groceries}", json={"name": "   "}, headers=auth_headers).status_code == 422
    assert client.put(f"{base}/source/{salary}", json={"name": "   "}, headers=auth_headers).status_code == 422

    renamed = client.put(f"{base}/category/{groceries}", json={"name": "  Food  "}, headers=auth_headers)
    category = next(c for c in renamed.json()["budget"]["categories"] if c["category_id"] == groceries)
    assert (category["name"], category["key"]) == ("Food", "2024-05-food")
