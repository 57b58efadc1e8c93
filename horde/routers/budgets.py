import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from horde.core.security import get_current_user_id
from horde.db import budgets as budgets_db
from horde.models.budget import BudgetCreate, BudgetInDB, BudgetUpdate, CategoryInDB, IncomeSourceInDB
from horde.models.common import SortOrder, get_currency_symbol
from horde.utils import budgets as budget_rules
from horde.utils import notifier

router = APIRouter()
logger = logging.getLogger(__name__)

DUPLICATE_MONTH_MESSAGE = "A budget for selected month and year has already been created"


def load_budget(user_id: str, budget_id: str) -> dict:
    budget = budgets_db.get_budget(user_id, budget_id)
    if not budget:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Budget not found")
    return budget


def save_budget(budget: dict) -> dict:
    budget["updated_at"] = datetime.utcnow().isoformat()
    if not budgets_db.put_budget(budget):
        raise HTTPException(status_code=500, detail="Failed to save budget")
    return budget


def reject_duplicates(names, label: str) -> None:
    duplicates = budget_rules.duplicate_names(names)
    if duplicates:
        raise HTTPException(
            status_code=400,
            detail={"message": f"Duplicate {label} names are not allowed", label: duplicates},
        )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_budget(body: BudgetCreate, user_id: str = Depends(get_current_user_id)):
    if budgets_db.find_budget_by_month(user_id, body.year, body.month):
        raise HTTPException(status_code=400, detail=DUPLICATE_MONTH_MESSAGE)

    reject_duplicates([c.name for c in body.categories], "categories")
    reject_duplicates([s.name for s in body.income_sources], "income_sources")

    budget = BudgetInDB(
        user_id=user_id,
        year=body.year,
        month=body.month,
        currency=body.currency,
        currency_sym=get_currency_symbol(body.currency),
        categories=[
            CategoryInDB(
                key=budget_rules.category_key(body.year, body.month, c.name),
                name=c.name,
                amount_budgeted=c.amount_budgeted,
            )
            for c in body.categories
        ],
        income_sources=[IncomeSourceInDB(**s.model_dump()) for s in body.income_sources],
    ).model_dump(mode="json")

    if not budgets_db.put_budget(budget):
        raise HTTPException(status_code=500, detail="Failed to save budget")

    notifier.notify_budget_created(user_id, budget)
    logger.info(f"Budget {budget['budget_id']} created for user {user_id} ({budget['year']}-{budget['month']:02d})")
    return {"message": "Budget created successfully.", "budget": budget_rules.serialize_budget(budget)}


@router.get("")
def list_budgets(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    year: Optional[int] = Query(None, ge=2000, le=2099),
    month: Optional[int] = Query(None, ge=1, le=12),
    amount_filter: Literal["all", "over", "under", "unused"] = "all",
    sort_field: Literal["year", "budgeted", "spent", "remaining", "percentage"] = "year",
    sort_order: SortOrder = SortOrder.DESC,
    user_id: str = Depends(get_current_user_id),
):
    budgets = budgets_db.get_budgets_for_user(user_id)
    budgets = budget_rules.filter_budgets(budgets, year=year, month=month, amount_filter=amount_filter)
    budgets = budget_rules.sort_budgets(budgets, sort_field, sort_order.value)
    page_items, pagination = budget_rules.paginate(budgets, page, limit)

    return {
        "budgets": [budget_rules.serialize_budget(b) for b in page_items],
        "pagination": pagination,
    }


@router.get("/current-budget")
def current_budget(user_id: str = Depends(get_current_user_id)):
    now = datetime.utcnow()
    budget = budgets_db.find_budget_by_month(user_id, now.year, now.month)
    if not budget:
        raise HTTPException(status_code=404, detail="No budget created for this month.")
    return {"budget": budget_rules.serialize_budget(budget)}


@router.get("/new-budget-defaults")
def new_budget_defaults(user_id: str = Depends(get_current_user_id)):
    return budget_rules.new_budget_defaults(budgets_db.get_budgets_for_user(user_id))


@router.get("/d/{budget_id}")
def read_budget(budget_id: str, user_id: str = Depends(get_current_user_id)):
    """Budget with category statistics refreshed from its expenses."""
    budget = load_budget(user_id, budget_id)
    budget_rules.sync_category_stats(user_id, budget)
    return {"budget": budget_rules.serialize_budget(budget)}


@router.get("/d/{budget_id}/all-categories")
def read_categories(budget_id: str, user_id: str = Depends(get_current_user_id)):
    budget = budget_rules.serialize_budget(load_budget(user_id, budget_id))
    return {"categories": budget["categories"]}


@router.get("/d/{budget_id}/income-sources")
def read_income_sources(budget_id: str, user_id: str = Depends(get_current_user_id)):
    budget = budget_rules.serialize_budget(load_budget(user_id, budget_id))
    return {"income_sources": budget["income_sources"], "total_income": budget["total_income"]}


@router.put("/d/{budget_id}")
def update_budget(budget_id: str, body: BudgetUpdate, user_id: str = Depends(get_current_user_id)):
    changes = body.model_dump(mode="json", exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Provide at least one field to update")

    budget = load_budget(user_id, budget_id)
    year = changes.get("year", budget["year"])
    month = changes.get("month", budget["month"])
    moved = (year, month) != (budget["year"], budget["month"])

    if moved:
        occupant = budgets_db.find_budget_by_month(user_id, year, month)
        if occupant and occupant["budget_id"] != budget_id:
            raise HTTPException(status_code=400, detail=DUPLICATE_MONTH_MESSAGE)

    if "currency" in changes:
        budget["currency"] = changes["currency"]
        budget["currency_sym"] = get_currency_symbol(changes["currency"])

    if moved:
        budget["year"], budget["month"] = year, month
        for category in budget.get("categories", []):
            category["key"] = budget_rules.category_key(year, month, category["name"])

    save_budget(budget)
    if moved:
        budget_rules.move_budget_expenses(user_id, budget_id, year, month)

    return {"message": "Budget updated successfully.", "budget": budget_rules.serialize_budget(budget)}


@router.delete("/d/{budget_id}")
def delete_budget(budget_id: str, user_id: str = Depends(get_current_user_id)):
    budget = load_budget(user_id, budget_id)

    deleted_expenses = budget_rules.delete_budget_expenses(user_id, budget_id)
    if not budgets_db.delete_budget(user_id, budget_id):
        raise HTTPException(status_code=500, detail="Failed to delete budget")

    notifier.notify_budget_deleted(user_id, budget)
    logger.info(f"Budget {budget_id} deleted for user {user_id} with {deleted_expenses} expenses")
    return {"message": "Budget deleted successfully.", "deleted_expenses": deleted_expenses}
