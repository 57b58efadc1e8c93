import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from horde.core.security import get_current_user_id
from horde.models.budget import CategoryCreate, CategoryInDB, CategoryUpdate
from horde.routers.budgets import load_budget, reject_duplicates, save_budget
from horde.utils import budgets as budget_rules

router = APIRouter()
logger = logging.getLogger(__name__)


def _find_or_404(budget: dict, category_id: str) -> dict:
    category = budget_rules.find_category(budget, category_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


@router.post("/d/{budget_id}/category", status_code=status.HTTP_201_CREATED)
def add_categories(budget_id: str, body: List[CategoryCreate], user_id: str = Depends(get_current_user_id)):
    if not body:
        raise HTTPException(status_code=400, detail="Provide at least one category")

    budget = load_budget(user_id, budget_id)
    names = [c.name for c in body]
    reject_duplicates(names, "categories")

    clashing = budget_rules.clashing_names([c["name"] for c in budget.get("categories", [])], names)
    if clashing:
        raise HTTPException(
            status_code=400,
            detail={"message": "Some categories already exist in this budget", "categories": clashing},
        )

    created = [
        CategoryInDB(
            key=budget_rules.category_key(budget["year"], budget["month"], c.name),
            name=c.name,
            amount_budgeted=c.amount_budgeted,
        ).model_dump(mode="json")
        for c in body
    ]
    budget.setdefault("categories", []).extend(created)
    save_budget(budget)
    budget_rules.apply_usage_thresholds(user_id, budget)

    return {"message": "Categories added successfully.", "budget": budget_rules.serialize_budget(budget)}


@router.put("/d/{budget_id}/category/{category_id}")
def update_category(
    budget_id: str,
    category_id: str,
    body: CategoryUpdate,
    user_id: str = Depends(get_current_user_id),
):
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Provide at least one field to update")

    budget = load_budget(user_id, budget_id)
    category = _find_or_404(budget, category_id)

    if "name" in changes:
        name = changes["name"].strip()
        others = [c["name"] for c in budget["categories"] if c["category_id"] != category_id]
        if budget_rules.clashing_names(others, [name]):
            raise HTTPException(
                status_code=400,
                detail={"message": "A category with this name already exists", "categories": [name]},
            )
        category["name"] = name
        category["key"] = budget_rules.category_key(budget["year"], budget["month"], name)

    if "amount_budgeted" in changes:
        category["amount_budgeted"] = changes["amount_budgeted"]

    category["updated_at"] = datetime.utcnow().isoformat()
    save_budget(budget)
    budget_rules.apply_usage_thresholds(user_id, budget)

    return {"message": "Category updated successfully.", "budget": budget_rules.serialize_budget(budget)}


@router.delete("/d/{budget_id}/category/{category_id}")
def delete_category(budget_id: str, category_id: str, user_id: str = Depends(get_current_user_id)):
    budget = load_budget(user_id, budget_id)
    _find_or_404(budget, category_id)

    deleted_expenses = budget_rules.delete_budget_expenses(user_id, budget_id, category_id)
    budget["categories"] = [c for c in budget["categories"] if c["category_id"] != category_id]
    save_budget(budget)
    budget_rules.sync_category_stats(user_id, budget)
    budget_rules.apply_usage_thresholds(user_id, budget)

    logger.info(f"Category {category_id} removed from budget {budget_id} with {deleted_expenses} expenses")
    return {
        "message": "Category deleted successfully.",
        "deleted_expenses": deleted_expenses,
        "budget": budget_rules.serialize_budget(budget),
    }
