from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from horde.core.config import settings
from horde.core.security import get_current_user_id
from horde.db import budgets as budgets_db
from horde.db import expenses as expenses_db
from horde.utils.analyzer import FinanceAnalyzer, previous_month

router = APIRouter()
finance_analyzer = FinanceAnalyzer(
    spike_sigma=settings.SPIKE_SIGMA,
    minimum_spike_amount=settings.SPIKE_MINIMUM_AMOUNT,
)


def category_names_for(user_id: str, budgets=None) -> dict:
    budgets = budgets if budgets is not None else budgets_db.get_budgets_for_user(user_id)
    return {c["category_id"]: c["name"] for b in budgets for c in b.get("categories", [])}


@router.get("/current-month")
def current_month_analytics(
    year: Optional[int] = Query(None, ge=2000, le=2099),
    month: Optional[int] = Query(None, ge=1, le=12),
    user_id: str = Depends(get_current_user_id),
):
    now = datetime.utcnow()
    year = year or now.year
    month = month or now.month
    prev_year, prev_month = previous_month(year, month)

    expenses = expenses_db.get_expenses_for_user(user_id, year=year, month=month)
    previous = expenses_db.get_expenses_for_user(user_id, year=prev_year, month=prev_month)

    return finance_analyzer.current_month(expenses, previous, category_names_for(user_id), year, month)


@router.get("/budgets")
def budgets_analytics(
    year: Optional[int] = Query(None, ge=2000, le=2099),
    user_id: str = Depends(get_current_user_id),
):
    year = year or datetime.utcnow().year
    overview = finance_analyzer.budgets_overview(budgets_db.get_budgets_for_user(user_id, year=year))
    return {"year": year, **overview}


@router.get("/budget/{budget_id}/insights")
def budget_insights(budget_id: str, user_id: str = Depends(get_current_user_id)):
    budget = budgets_db.get_budget(user_id, budget_id)
    if not budget:
        raise HTTPException(status_code=404, detail="Budget not found")

    expenses = expenses_db.get_expenses_for_user(user_id, budget_id=budget_id)
    return finance_analyzer.budget_insights(budget, expenses)
