"""
Consistency rules between budgets, their categories and income sources.

Budgets are stored as single documents with embedded categories and income
sources, so most rules here work on plain dicts and are free of I/O. The few
helpers that talk to DynamoDB are at the bottom of the module.
"""
from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from horde.db import budgets as budgets_db
from horde.db import expenses as expenses_db
from horde.utils import notifier

logger = logging.getLogger(__name__)

USAGE_THRESHOLDS = (50, 75, 90, 100)
MAX_RECURRING_CATEGORIES = 5


def normalize_name(name: str) -> str:
    return (name or "").strip().lower()


def slugify(name: str) -> str:
    return "-".join(normalize_name(name).split())


def category_key(year: int, month: int, name: str) -> str:
    return f"{year}-{month:02d}-{slugify(name)}"


def duplicate_names(names: Iterable[str]) -> List[str]:
    """Names appearing more than once, compared case-insensitively."""
    seen = set()
    reported = set()
    duplicates = []
    for name in names:
        normalized = normalize_name(name)
        if normalized in seen and normalized not in reported:
            duplicates.append(name.strip())
            reported.add(normalized)
        seen.add(normalized)
    return duplicates


def clashing_names(existing: Iterable[str], incoming: Iterable[str]) -> List[str]:
    taken = {normalize_name(name) for name in existing}
    return [name.strip() for name in incoming if normalize_name(name) in taken]


def as_contribution(part: float, whole: float) -> Dict[str, Any]:
    if not whole:
        return {"in_percent": "0.00%", "in_number": 0.0}
    share = round(part / whole * 100, 2)
    return {"in_percent": f"{share:.2f}%", "in_number": share}


def expenses_stats(amounts: List[float]) -> Dict[str, Any]:
    if not amounts:
        return {"total_amount": 0.0, "count": 0, "average_amount": 0.0, "min_amount": 0.0, "max_amount": 0.0}
    total = round(sum(amounts), 2)
    return {
        "total_amount": total,
        "count": len(amounts),
        "average_amount": round(total / len(amounts), 2),
        "min_amount": round(min(amounts), 2),
        "max_amount": round(max(amounts), 2),
    }


def budget_totals(budget: Dict[str, Any]) -> Dict[str, float]:
    categories = budget.get("categories", [])
    amount_budgeted = round(sum(float(c.get("amount_budgeted", 0)) for c in categories), 2)
    amount_spent = round(sum(float(c.get("amount_spent", 0)) for c in categories), 2)
    total_income = round(sum(float(s.get("amount", 0)) for s in budget.get("income_sources", [])), 2)
    usage = round(amount_spent / amount_budgeted * 100, 2) if amount_budgeted else 0.0
    return {
        "amount_budgeted": amount_budgeted,
        "amount_spent": amount_spent,
        "budget_variance": round(amount_budgeted - amount_spent, 2),
        "total_income": total_income,
        "usage_percentage": usage,
    }


def serialize_category(category: Dict[str, Any], totals: Dict[str, float]) -> Dict[str, Any]:
    budgeted = float(category.get("amount_budgeted", 0))
    spent = float(category.get("amount_spent", 0))
    return {
        **category,
        "budget_variance": round(budgeted - spent, 2),
        "overall_contribution": as_contribution(budgeted, totals["amount_budgeted"]),
        "expense_contribution": as_contribution(spent, totals["amount_spent"]),
    }


def serialize_income_source(source: Dict[str, Any], total_income: float) -> Dict[str, Any]:
    return {**source, "contribution": as_contribution(float(source.get("amount", 0)), total_income)}


def serialize_budget(budget: Dict[str, Any]) -> Dict[str, Any]:
    """Budget document plus every derived figure the API exposes."""
    totals = budget_totals(budget)
    data = {k: v for k, v in budget.items()}
    data.update(totals)
    data["categories"] = [serialize_category(c, totals) for c in budget.get("categories", [])]
    data["income_sources"] = [
        serialize_income_source(s, totals["total_income"]) for s in budget.get("income_sources", [])
    ]
    return data


def find_category(budget: Dict[str, Any], category_id: str) -> Optional[Dict[str, Any]]:
    return next((c for c in budget.get("categories", []) if c.get("category_id") == category_id), None)


def find_income_source(budget: Dict[str, Any], source_id: str) -> Optional[Dict[str, Any]]:
    return next((s for s in budget.get("income_sources", []) if s.get("source_id") == source_id), None)


def apply_category_stats(budget: Dict[str, Any], expenses: List[Dict[str, Any]], category_ids=None) -> bool:
    """
    Recompute `amount_spent` and `expenses_stats` of the budget's categories
    from `expenses`. Only the categories in `category_ids` are touched when
    given. Returns True when any category changed.
    """
    amounts: Dict[str, List[float]] = defaultdict(list)
    for expense in expenses:
        amounts[expense.get("category_id")].append(float(expense.get("amount", 0)))

    changed = False
    now = datetime.utcnow().isoformat()
    for category in budget.get("categories", []):
        if category_ids is not None and category["category_id"] not in category_ids:
            continue
        stats = expenses_stats(amounts.get(category["category_id"], []))
        if category.get("expenses_stats") != stats or float(category.get("amount_spent", 0)) != stats["total_amount"]:
            category["expenses_stats"] = stats
            category["amount_spent"] = stats["total_amount"]
            category["updated_at"] = now
            changed = True
    return changed


def evaluate_thresholds(usage_percentage: float, notified: Iterable[int]) -> Tuple[List[int], Optional[int]]:
    """
    Compare usage with the alert thresholds.

    Returns the thresholds to record (every one currently reached) and the
    threshold to alert on: the highest newly reached one, or None.
    """
    reached = [t for t in USAGE_THRESHOLDS if usage_percentage >= t]
    already = set(int(t) for t in notified)
    fresh = [t for t in reached if t not in already]
    return reached, (max(fresh) if fresh else None)


def latest_expense_date(expenses: List[Dict[str, Any]]) -> Optional[str]:
    dates = [e["expense_date"] for e in expenses if e.get("expense_date")]
    return max(dates) if dates else None


def new_budget_defaults(budgets: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Suggestions for the next budget: categories the user keeps coming back
    to, and the income sources of the latest budget.
    """
    ordered = sorted(budgets, key=lambda b: (b.get("year", 0), b.get("month", 0)), reverse=True)

    occurrences: Dict[str, Dict[str, Any]] = {}
    for budget in ordered:
        for category in budget.get("categories", []):
            normalized = normalize_name(category.get("name"))
            entry = occurrences.get(normalized)
            if entry is None:
                occurrences[normalized] = {
                    "name": category.get("name"),
                    "total_occurrences": 1,
                    "most_recent_occurrence": {
                        "budget_id": budget["budget_id"],
                        "year": budget["year"],
                        "month": budget["month"],
                        "category_key": category.get("key"),
                        "amount_budgeted": category.get("amount_budgeted", 0),
                        "amount_spent": category.get("amount_spent", 0),
                    },
                }
            else:
                entry["total_occurrences"] += 1

    recurring = [entry for entry in occurrences.values() if entry["total_occurrences"] > 1]
    recurring.sort(key=lambda entry: normalize_name(entry["name"]))

    latest_sources = []
    if ordered:
        latest_sources = [
            {k: source.get(k) for k in ("name", "amount", "description", "recurring", "frequency")}
            for source in ordered[0].get("income_sources", [])
        ]

    return {
        "recurring_categories": recurring[:MAX_RECURRING_CATEGORIES],
        "most_recent_income_sources": latest_sources,
    }


def filter_budgets(budgets: List[Dict[str, Any]], year=None, month=None, amount_filter: str = "all"):
    selected = []
    for budget in budgets:
        if year is not None and budget.get("year") != year:
            continue
        if month is not None and budget.get("month") != month:
            continue
        totals = budget_totals(budget)
        spent, budgeted = totals["amount_spent"], totals["amount_budgeted"]
        if amount_filter == "over" and not spent > budgeted:
            continue
        if amount_filter == "under" and not (0 < spent <= budgeted):
            continue
        if amount_filter == "unused" and spent != 0:
            continue
        selected.append(budget)
    return selected


_SORT_KEYS = {
    "year": lambda b, t: (b.get("year", 0), b.get("month", 0)),
    "budgeted": lambda b, t: t["amount_budgeted"],
    "spent": lambda b, t: t["amount_spent"],
    "remaining": lambda b, t: t["budget_variance"],
    "percentage": lambda b, t: t["usage_percentage"],
}


def sort_budgets(budgets: List[Dict[str, Any]], sort_field: str = "year", sort_order: str = "desc"):
    key_fn = _SORT_KEYS[sort_field]
    return sorted(budgets, key=lambda b: key_fn(b, budget_totals(b)), reverse=sort_order == "desc")


def paginate(items: List[Any], page: int, limit: int) -> Tuple[List[Any], Dict[str, int]]:
    total = len(items)
    start = (page - 1) * limit
    page_items = items[start:start + limit]
    return page_items, {
        "total_items_count": total,
        "total_pages": math.ceil(total / limit) if total else 0,
        "current_page_count": len(page_items),
        "page": page,
        "limit": limit,
    }


# Persistence-backed helpers


def sync_category_stats(user_id: str, budget: Dict[str, Any], category_ids=None) -> bool:
    """
    Reload the budget's expenses, refresh category statistics and the last
    expense date, and persist the budget when anything changed.
    """
    expenses = expenses_db.get_expenses_for_user(user_id, budget_id=budget["budget_id"])
    changed = apply_category_stats(budget, expenses, category_ids)

    last_date = latest_expense_date(expenses)
    if budget.get("last_expense_date") != last_date:
        budget["last_expense_date"] = last_date
        changed = True

    if changed:
        budget["updated_at"] = datetime.utcnow().isoformat()
        if not budgets_db.put_budget(budget):
            logger.error(f"Failed to persist refreshed statistics for budget {budget['budget_id']}")
    return changed


def apply_usage_thresholds(user_id: str, budget: Dict[str, Any]) -> Optional[int]:
    """
    Alert once per usage threshold reached; thresholds the budget fell back
    under are forgotten so they can fire again. Returns the alerted threshold.
    """
    recorded = sorted(int(t) for t in budget.get("notified_thresholds", []))
    usage = budget_totals(budget)["usage_percentage"]
    reached, alert = evaluate_thresholds(usage, recorded)

    if alert is not None:
        notifier.notify_budget_threshold(user_id, budget, alert)
    if reached != recorded:
        budget["notified_thresholds"] = reached
        if not budgets_db.put_budget(budget):
            logger.error(f"Failed to record thresholds for budget {budget['budget_id']}")
    return alert


def move_budget_expenses(user_id: str, budget_id: str, year: int, month: int) -> int:
    """Keep the year/month copied onto expenses in line with their budget."""
    moved = 0
    for expense in expenses_db.get_expenses_for_user(user_id, budget_id=budget_id):
        if expense.get("year") == year and expense.get("month") == month:
            continue
        if expenses_db.update_expense(user_id, expense["expense_id"], {"year": year, "month": month}):
            moved += 1
    return moved


def delete_budget_expenses(user_id: str, budget_id: str, category_id: Optional[str] = None) -> int:
    """Cascade used when a budget or one of its categories goes away."""
    expenses = expenses_db.get_expenses_for_user(user_id, budget_id=budget_id, category_id=category_id)
    if not expenses:
        return 0
    return expenses_db.delete_expenses(user_id, [e["expense_id"] for e in expenses])
