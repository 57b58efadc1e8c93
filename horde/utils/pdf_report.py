import csv
import io
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fpdf import FPDF

from horde.core.config import settings
from horde.models.common import month_name

logger = logging.getLogger(__name__)

CSV_FIELDS = ["expense_id", "expense_date", "category", "description", "amount"]


def get_s3_client():
    # Default AWS credential chain (environment variables, credentials file or IAM role)
    return boto3.client("s3", region_name=settings.S3_REGION)


def object_url(key: str) -> str:
    return f"https://{settings.S3_BUCKET_NAME}.s3.{settings.S3_REGION}.amazonaws.com/{key}"


def _latin1(text: Any) -> str:
    # Core PDF fonts only cover latin-1
    return str(text).encode("latin-1", "replace").decode("latin-1")


def _upload(buffer: io.BytesIO, key: str, content_type: str) -> Optional[str]:
    try:
        get_s3_client().upload_fileobj(
            buffer, settings.S3_BUCKET_NAME, key, ExtraArgs={"ContentType": content_type}
        )
        return object_url(key)
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to upload {key}: {str(e)}")
        return None


def build_pdf(budget: Dict[str, Any], summary: Dict[str, Any]) -> bytes:
    """Render the budget report and return the PDF bytes."""
    currency = budget.get("currency", "")
    title = f"Budget Report - {month_name(budget['month'])} {budget['year']}"

    pdf = FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 10, _latin1(title), new_x="LMARGIN", new_y="NEXT")

    pdf.set_font("Helvetica", "", 12)
    pdf.cell(0, 8, f"Budget ID: {budget['budget_id']}", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 8, f"Amount Budgeted: {currency} {summary['amount_budgeted']:,.2f}", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 8, f"Amount Spent: {currency} {summary['total_spent']:,.2f}", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 8, f"Variance: {currency} {summary['budget_variance']:,.2f}", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 8, f"Total Income: {currency} {summary['total_income']:,.2f}", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(5)

    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(0, 10, "Categories:", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 11)
    for category in budget.get("categories", []):
        budgeted = float(category.get("amount_budgeted", 0))
        spent = float(category.get("amount_spent", 0))
        line = (
            f"- {category['name']}: budgeted {budgeted:,.2f}, spent {spent:,.2f}, "
            f"variance {budgeted - spent:,.2f}"
        )
        pdf.cell(0, 8, _latin1(line), new_x="LMARGIN", new_y="NEXT")

    pdf.ln(5)
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(0, 10, "Overspending Categories:", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 11)
    if summary["overspending_categories"]:
        for name, amount in summary["overspending_categories"].items():
            pdf.cell(0, 8, _latin1(f"- {name}: {currency} {amount:,.2f}"), new_x="LMARGIN", new_y="NEXT")
    else:
        pdf.cell(0, 8, "None", new_x="LMARGIN", new_y="NEXT")

    pdf.ln(5)
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(0, 10, "Suggested Budgets:", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 11)
    for name, amount in summary["suggested_budgets"].items():
        pdf.cell(0, 8, _latin1(f"- {name}: {currency} {amount:,.2f}"), new_x="LMARGIN", new_y="NEXT")

    pdf.ln(5)
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(0, 10, "Spending Spikes:", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 11)
    if summary["spending_spikes"]:
        for spike in summary["spending_spikes"]:
            line = f"- {spike['category']}: {currency} {float(spike['amount']):,.2f} on {str(spike['expense_date'])[:10]}"
            pdf.cell(0, 8, _latin1(line), new_x="LMARGIN", new_y="NEXT")
    else:
        pdf.cell(0, 8, "None", new_x="LMARGIN", new_y="NEXT")

    return bytes(pdf.output())


def build_csv(expenses: List[Dict[str, Any]], category_names: Dict[str, str]) -> bytes:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS)
    writer.writeheader()
    for e in sorted(expenses, key=lambda item: str(item.get("expense_date", ""))):
        writer.writerow({
            "expense_id": e["expense_id"],
            "expense_date": e["expense_date"],
            "category": category_names.get(e["category_id"], "Unknown"),
            "description": e.get("description", ""),
            "amount": e["amount"],
        })
    return output.getvalue().encode("utf-8")


def generate_and_upload_pdf(user_id: str, budget: Dict[str, Any], summary: Dict[str, Any], report_id: str):
    s3_key = f"reports/{user_id}/{report_id}.pdf"
    return _upload(io.BytesIO(build_pdf(budget, summary)), s3_key, "application/pdf")


def generate_and_upload_csv(user_id: str, expenses, category_names: Dict[str, str], report_id: str):
    s3_key = f"reports/{user_id}/{report_id}.csv"
    return _upload(io.BytesIO(build_csv(expenses, category_names)), s3_key, "text/csv")
