from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from horde.core.security import get_current_user_id
from horde.models.budget import IncomeSourceCreate, IncomeSourceInDB, IncomeSourceUpdate
from horde.routers.budgets import load_budget, reject_duplicates, save_budget
from horde.utils import budgets as budget_rules

router = APIRouter()


def _find_or_404(budget: dict, source_id: str) -> dict:
    source = budget_rules.find_income_source(budget, source_id)
    if not source:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Budget source not found")
    return source


@router.post("/d/{budget_id}/source", status_code=status.HTTP_201_CREATED)
def add_sources(budget_id: str, body: List[IncomeSourceCreate], user_id: str = Depends(get_current_user_id)):
    if not body:
        raise HTTPException(status_code=400, detail="Provide at least one budget source")

    budget = load_budget(user_id, budget_id)
    names = [s.name for s in body]
    reject_duplicates(names, "income_sources")

    clashing = budget_rules.clashing_names([s["name"] for s in budget.get("income_sources", [])], names)
    if clashing:
        raise HTTPException(
            status_code=400,
            detail={"message": "Some budget sources already exist in this budget", "income_sources": clashing},
        )

    budget.setdefault("income_sources", []).extend(
        IncomeSourceInDB(**s.model_dump()).model_dump(mode="json") for s in body
    )
    save_budget(budget)
    return {"message": "Budget sources added successfully.", "budget": budget_rules.serialize_budget(budget)}


@router.put("/d/{budget_id}/source/{source_id}")
def update_source(
    budget_id: str,
    source_id: str,
    body: IncomeSourceUpdate,
    user_id: str = Depends(get_current_user_id),
):
    changes = body.model_dump(mode="json", exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Provide at least one field to update")

    budget = load_budget(user_id, budget_id)
    source = _find_or_404(budget, source_id)

    if "name" in changes:
        changes["name"] = changes["name"].strip()
        others = [s["name"] for s in budget["income_sources"] if s["source_id"] != source_id]
        if budget_rules.clashing_names(others, [changes["name"]]):
            raise HTTPException(
                status_code=400,
                detail={"message": "A budget source with this name already exists", "income_sources": [changes["name"]]},
            )

    source.update(changes)
    source["updated_at"] = datetime.utcnow().isoformat()
    save_budget(budget)
    return {"message": "Budget source updated successfully.", "budget": budget_rules.serialize_budget(budget)}


@router.delete("/d/{budget_id}/source/{source_id}")
def delete_source(budget_id: str, source_id: str, user_id: str = Depends(get_current_user_id)):
    budget = load_budget(user_id, budget_id)
    _find_or_404(budget, source_id)

    budget["income_sources"] = [s for s in budget["income_sources"] if s["source_id"] != source_id]
    save_budget(budget)
    return {"message": "Budget source deleted successfully.", "budget": budget_rules.serialize_budget(budget)}
