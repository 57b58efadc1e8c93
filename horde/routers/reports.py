import logging
import uuid
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException

from horde.core.security import get_current_user_id
from horde.db import budgets as budgets_db
from horde.db import expenses as expenses_db
from horde.routers.analytics import finance_analyzer
from horde.utils import pdf_report
from horde.utils.budgets import budget_totals

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/d/{budget_id}/report")
def generate_budget_report(budget_id: str, user_id: str = Depends(get_current_user_id)) -> Dict:
    """
    Build the budget's PDF and CSV reports, upload both to S3 and return
    the insights together with the download links.
    """
    budget = budgets_db.get_budget(user_id, budget_id)
    if not budget:
        raise HTTPException(status_code=404, detail="Budget not found")

    expenses = expenses_db.get_expenses_for_user(user_id, budget_id=budget_id)
    logger.info(f"Generating report for budget {budget_id} with {len(expenses)} expenses")
    if not expenses:
        raise HTTPException(status_code=404, detail="No expenses found for this budget.")

    summary = {**budget_totals(budget), **finance_analyzer.budget_insights(budget, expenses)}
    category_names = {c["category_id"]: c["name"] for c in budget.get("categories", [])}
    report_id = f"{budget['year']}-{budget['month']:02d}_{uuid.uuid4().hex[:6]}"

    pdf_url = pdf_report.generate_and_upload_pdf(user_id, budget, summary, report_id)
    csv_url = pdf_report.generate_and_upload_csv(user_id, expenses, category_names, report_id)
    logger.info(f"Report {report_id} uploaded: pdf={pdf_url} csv={csv_url}")

    return {
        **summary,
        "report_id": report_id,
        "pdf_report_url": pdf_url,
        "csv_report_url": csv_url,
    }
