"""
Random budgets and expenses for local development.
"""
import random
from calendar import monthrange
from datetime import datetime
from typing import Any, Dict, List, Optional

from horde.models.common import Currency

INCOME_SOURCES = [
    "Salary",
    "Freelance",
    "Consulting",
    "Investments",
    "Side Business",
    "Rental Income",
    "Dividends",
    "Contract Work",
    "Commission",
    "Royalties",
    "Bonus",
]

CATEGORIES = [
    "Transport",
    "Family",
    "Rent",
    "Groceries",
    "Utilities",
    "Travel",
    "Health",
    "Entertainment",
    "Savings",
    "Education",
]

EXPENSE_DESCRIPTIONS = {
    "Transport": ["Bus fare", "Fuel", "Ride share", "Train ticket", "Parking"],
    "Family": ["School supplies", "Gift", "Family dinner", "Allowance"],
    "Rent": ["Monthly rent", "Service charge", "Maintenance fee"],
    "Groceries": ["Supermarket run", "Fresh produce", "Bulk shopping", "Snacks"],
    "Utilities": ["Electricity bill", "Water bill", "Internet", "Phone data"],
    "Travel": ["Flight", "Hotel", "Visa fee", "Tour"],
    "Health": ["Pharmacy", "Clinic visit", "Gym membership", "Lab test"],
    "Entertainment": ["Cinema", "Streaming subscription", "Concert", "Games"],
    "Savings": ["Savings deposit", "Emergency fund", "Investment top-up"],
    "Education": ["Online course", "Books", "Exam fee", "Workshop"],
}

BUDGET_SHARE_OF_INCOME = 0.7
# One-time income counts as a sixth of a month
ONE_TIME_MONTHLY_FACTOR = 6


def _income_amount(currency: Currency) -> int:
    if currency == Currency.NGN:
        return round(random.randint(50_000, 1_000_000), -3)
    return round(random.randint(1_000, 15_000), -2)


def generate_budget_data(
    currency: Currency = Currency.NGN,
    year: Optional[int] = None,
    month: Optional[int] = None,
    min_sources: int = 2,
    max_sources: int = 5,
    min_categories: int = 3,
    max_categories: int = 8,
) -> Dict[str, Any]:
    """Payload shaped like a budget creation request."""
    now = datetime.utcnow()
    sources = []
    for name in random.sample(INCOME_SOURCES, random.randint(min_sources, max_sources)):
        frequency = random.choice(["monthly", "one-time"])
        sources.append({
            "name": name,
            "amount": float(_income_amount(currency)),
            "description": f"Income from {name.lower()}",
            "recurring": frequency == "monthly",
            "frequency": frequency,
        })

    monthly_income = sum(
        s["amount"] if s["frequency"] == "monthly" else s["amount"] / ONE_TIME_MONTHLY_FACTOR for s in sources
    )
    total_budget = monthly_income * BUDGET_SHARE_OF_INCOME

    names = random.sample(CATEGORIES, random.randint(min_categories, max_categories))
    weights = {name: round(random.uniform(0.5, 3.0), 1) for name in names}
    total_weight = sum(weights.values())
    categories = [
        {"name": name, "amount_budgeted": round(weights[name] / total_weight * total_budget, 2)}
        for name in names
    ]

    return {
        "currency": currency.value,
        "year": year or now.year,
        "month": month or now.month,
        "categories": categories,
        "income_sources": sources,
    }


def generate_expenses(
    budget: Dict[str, Any],
    min_per_category: int = 15,
    max_per_category: int = 50,
) -> List[Dict[str, Any]]:
    """
    Random expenses spread over the budget's month. Each category gets
    between `min_per_category` and `max_per_category` entries whose total
    lands around its budgeted amount.
    """
    year, month = budget["year"], budget["month"]
    days = monthrange(year, month)[1]
    expenses = []

    for category in budget.get("categories", []):
        count = random.randint(min_per_category, max_per_category)
        target = float(category.get("amount_budgeted", 0)) * random.uniform(0.6, 1.2)
        average = max(target / count, 1.0)
        descriptions = EXPENSE_DESCRIPTIONS.get(category["name"], ["Miscellaneous"])

        for _ in range(count):
            expense_date = datetime(
                year, month, random.randint(1, days), random.randint(0, 23), random.randint(0, 59)
            )
            expenses.append({
                "budget_id": budget["budget_id"],
                "category_id": category["category_id"],
                "amount": round(max(average * random.uniform(0.3, 1.7), 0.5), 2),
                "description": random.choice(descriptions),
                "expense_date": expense_date.isoformat(),
                "year": year,
                "month": month,
            })
    return expenses
