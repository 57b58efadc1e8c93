import logging
from datetime import date, datetime, time, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from horde.core.security import get_current_user_id
from horde.db import budgets as budgets_db
from horde.db import expenses as expenses_db
from horde.models.common import SortOrder
from horde.models.expense import (
    ExpenseBulkDelete,
    ExpenseCreate,
    ExpenseInDB,
    ExpensePublic,
    ExpenseSortField,
    ExpenseUpdate,
)
from horde.utils import budgets as budget_rules

router = APIRouter()
logger = logging.getLogger(__name__)


def as_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _budget_and_category(user_id: str, budget_id: str, category_id: str):
    budget = budgets_db.get_budget(user_id, budget_id)
    if not budget:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Budget not found")
    category = budget_rules.find_category(budget, category_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return budget, category


def _refresh(user_id: str, budget: dict, category_ids=None) -> dict:
    budget_rules.sync_category_stats(user_id, budget, category_ids)
    budget_rules.apply_usage_thresholds(user_id, budget)
    return budget


@router.post("", status_code=status.HTTP_201_CREATED)
def create_expense(body: ExpenseCreate, user_id: str = Depends(get_current_user_id)):
    budget, category = _budget_and_category(user_id, body.budget_id, body.category_id)

    expense = ExpenseInDB(
        user_id=user_id,
        budget_id=body.budget_id,
        category_id=body.category_id,
        amount=round(body.amount, 2),
        description=body.description.strip(),
        expense_date=as_utc_naive(body.expense_date).isoformat(),
        year=budget["year"],
        month=budget["month"],
    ).model_dump()

    if not expenses_db.put_expense(expense):
        raise HTTPException(status_code=500, detail="Failed to save expense")

    _refresh(user_id, budget, {body.category_id})
    category = budget_rules.find_category(budget, body.category_id)

    return {
        "expense": ExpensePublic(**expense).model_dump(),
        "related_category": category,
    }


@router.get("")
def list_expenses(
    description: Optional[str] = None,
    year: Optional[int] = Query(None, ge=2000, le=2099),
    month: Optional[int] = Query(None, ge=1, le=12),
    budget_id: Optional[str] = None,
    category_id: Optional[str] = None,
    min_amount: Optional[float] = Query(None, ge=0),
    max_amount: Optional[float] = Query(None, ge=0),
    exact_amount: Optional[float] = Query(None, ge=0),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    sort_by: ExpenseSortField = ExpenseSortField.EXPENSE_DATE,
    sort_order: SortOrder = SortOrder.DESC,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
):
    if exact_amount is None and min_amount is not None and max_amount is not None and min_amount > max_amount:
        raise HTTPException(status_code=400, detail="min_amount cannot be greater than max_amount")
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date cannot be after end_date")

    expenses = expenses_db.get_expenses_for_user(
        user_id, budget_id=budget_id, category_id=category_id, year=year, month=month
    )

    if description:
        needle = description.strip().lower()
        expenses = [e for e in expenses if needle in str(e.get("description", "")).lower()]

    if exact_amount is not None:
        expenses = [e for e in expenses if float(e["amount"]) == exact_amount]
    else:
        if min_amount is not None:
            expenses = [e for e in expenses if float(e["amount"]) >= min_amount]
        if max_amount is not None:
            expenses = [e for e in expenses if float(e["amount"]) <= max_amount]

    if start_date:
        start = datetime.combine(start_date, time.min)
        expenses = [e for e in expenses if datetime.fromisoformat(e["expense_date"]) >= start]
    if end_date:
        end = datetime.combine(end_date, time.max)
        expenses = [e for e in expenses if datetime.fromisoformat(e["expense_date"]) <= end]

    sort_key = sort_by.value
    expenses.sort(
        key=lambda e: float(e[sort_key]) if sort_key == "amount" else str(e.get(sort_key, "")),
        reverse=sort_order == SortOrder.DESC,
    )
    page_items, pagination = budget_rules.paginate(expenses, page, limit)

    return {
        "expenses": [ExpensePublic(**e).model_dump() for e in page_items],
        "pagination": pagination,
    }


@router.put("/{expense_id}")
def update_expense(expense_id: str, body: ExpenseUpdate, user_id: str = Depends(get_current_user_id)):
    existing = expenses_db.get_expense(user_id, expense_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Expense not found")

    budget, _ = _budget_and_category(user_id, body.budget_id, body.category_id)

    updates = {
        "budget_id": body.budget_id,
        "category_id": body.category_id,
        "year": budget["year"],
        "month": budget["month"],
        "updated_at": datetime.utcnow().isoformat(),
    }
    if body.amount is not None:
        updates["amount"] = round(body.amount, 2)
    if body.description is not None:
        updates["description"] = body.description.strip()
    if body.expense_date is not None:
        updates["expense_date"] = as_utc_naive(body.expense_date).isoformat()

    updated = expenses_db.update_expense(user_id, expense_id, updates)
    if not updated:
        raise HTTPException(status_code=500, detail="Failed to update expense")

    # Both the category the expense left and the one it joined change
    if existing["budget_id"] != body.budget_id:
        previous_budget = budgets_db.get_budget(user_id, existing["budget_id"])
        if previous_budget:
            _refresh(user_id, previous_budget, {existing["category_id"]})
        _refresh(user_id, budget, {body.category_id})
    else:
        _refresh(user_id, budget, {existing["category_id"], body.category_id})

    return {
        "expense": ExpensePublic(**updated).model_dump(),
        "related_category": budget_rules.find_category(budget, body.category_id),
    }


@router.delete("/{expense_id}")
def delete_expense(expense_id: str, user_id: str = Depends(get_current_user_id)):
    deleted = expenses_db.delete_expense(user_id, expense_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Expense not found")

    budget = budgets_db.get_budget(user_id, deleted["budget_id"])
    if budget:
        _refresh(user_id, budget, {deleted["category_id"]})

    return {"message": "Expense deleted successfully.", "expense": ExpensePublic(**deleted).model_dump()}


@router.delete("")
def delete_expenses(body: ExpenseBulkDelete, user_id: str = Depends(get_current_user_id)):
    budget = budgets_db.get_budget(user_id, body.budget_id)
    if not budget:
        raise HTTPException(status_code=404, detail="Budget not found")
    if body.category_id and not budget_rules.find_category(budget, body.category_id):
        raise HTTPException(status_code=404, detail="Category not found")

    deleted_count = budget_rules.delete_budget_expenses(user_id, body.budget_id, body.category_id)
    _refresh(user_id, budget)

    logger.info(f"Deleted {deleted_count} expenses from budget {body.budget_id} for user {user_id}")
    return {"message": "Expenses deleted successfully.", "deleted_count": deleted_count}
