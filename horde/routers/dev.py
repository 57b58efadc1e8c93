"""
Development-only helpers that fill a user's account with random data.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status

from horde.core.config import settings
from horde.core.security import get_current_user_id
from horde.db import budgets as budgets_db
from horde.db import expenses as expenses_db
from horde.models.budget import BudgetCreate, BudgetInDB, CategoryInDB, IncomeSourceInDB
from horde.models.common import get_currency_symbol
from horde.models.expense import ExpenseInDB
from horde.routers.budgets import DUPLICATE_MONTH_MESSAGE, load_budget
from horde.utils import budgets as budget_rules
from horde.utils import seed

router = APIRouter()
logger = logging.getLogger(__name__)


def development_only():
    if settings.is_production:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not available in production")


def _insert_random_expenses(user_id: str, budget: dict) -> int:
    expenses = [ExpenseInDB(user_id=user_id, **e).model_dump() for e in seed.generate_expenses(budget)]
    if not expenses_db.put_expenses(expenses):
        raise HTTPException(status_code=500, detail="Failed to save expenses")
    budget_rules.sync_category_stats(user_id, budget)
    return len(expenses)


@router.post("/budget-with-exp", dependencies=[Depends(development_only)], status_code=status.HTTP_201_CREATED)
def seed_budget_with_expenses(
    year: Optional[int] = Body(None, embed=True, ge=2000, le=2099),
    month: Optional[int] = Body(None, embed=True, ge=1, le=12),
    user_id: str = Depends(get_current_user_id),
):
    payload = BudgetCreate(**seed.generate_budget_data(year=year, month=month))
    if budgets_db.find_budget_by_month(user_id, payload.year, payload.month):
        raise HTTPException(status_code=400, detail=DUPLICATE_MONTH_MESSAGE)

    budget = BudgetInDB(
        user_id=user_id,
        year=payload.year,
        month=payload.month,
        currency=payload.currency,
        currency_sym=get_currency_symbol(payload.currency),
        categories=[
            CategoryInDB(
                key=budget_rules.category_key(payload.year, payload.month, c.name),
                name=c.name,
                amount_budgeted=c.amount_budgeted,
            )
            for c in payload.categories
        ],
        income_sources=[IncomeSourceInDB(**s.model_dump()) for s in payload.income_sources],
    ).model_dump(mode="json")

    if not budgets_db.put_budget(budget):
        raise HTTPException(status_code=500, detail="Failed to save budget")

    expenses_count = _insert_random_expenses(user_id, budget)
    logger.info(f"Seeded budget {budget['budget_id']} with {expenses_count} expenses for user {user_id}")
    return {
        "message": "Budget and expenses created successfully.",
        "expenses_count": expenses_count,
        "budget": budget_rules.serialize_budget(budget),
    }


@router.post("/expenses/create/{budget_id}", dependencies=[Depends(development_only)])
def seed_expenses(budget_id: str, user_id: str = Depends(get_current_user_id)):
    budget = load_budget(user_id, budget_id)
    expenses_count = _insert_random_expenses(user_id, budget)
    return {
        "message": "Expenses created for specified budget successfully.",
        "expenses_count": expenses_count,
        "budget": budget_rules.serialize_budget(budget),
    }


@router.delete("/all-expenses", dependencies=[Depends(development_only)])
def delete_all_expenses(user_id: str = Depends(get_current_user_id)):
    expenses = expenses_db.get_expenses_for_user(user_id)
    deleted_count = expenses_db.delete_expenses(user_id, [e["expense_id"] for e in expenses])

    for budget in budgets_db.get_budgets_for_user(user_id):
        budget_rules.sync_category_stats(user_id, budget)

    return {"message": "User Expenses Deleted Successfully.", "deleted_count": deleted_count}
