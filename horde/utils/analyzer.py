from __future__ import annotations

import statistics
from collections import defaultdict
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from horde.models.common import month_name
from horde.utils.budgets import budget_totals

RECENT_TRANSACTIONS = 5
WEEK_LENGTH_DAYS = 7


@dataclass
class CategoryInsight:
    """Represents calculated insights for a single budget category."""

    category_id: str
    category: str
    total: float
    average: float
    transaction_count: int
    amount_budgeted: float = 0.0
    overspent: bool = False
    suggested_budget: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Remove None values for cleaner JSON responses
        return {k: v for k, v in data.items() if v is not None}


def _expense_datetime(expense: Dict[str, Any]) -> datetime:
    return datetime.fromisoformat(str(expense["expense_date"]))


def previous_month(year: int, month: int):
    if month == 1:
        return year - 1, 12
    return year, month - 1


class FinanceAnalyzer:
    """
    Aggregations behind the analytics and report endpoints. Works on plain
    expense and budget dicts as they come out of DynamoDB.
    """

    def __init__(
        self,
        spike_sigma: float = 2.5,
        minimum_spike_amount: float = 250.0,
        buffer_percentage: float = 0.15,
    ) -> None:
        self._spike_sigma = spike_sigma
        self._minimum_spike_amount = minimum_spike_amount
        self._buffer_percentage = buffer_percentage

    def monthly_total(self, expenses: List[Dict[str, Any]]) -> float:
        return round(sum(float(exp.get("amount", 0)) for exp in expenses), 2)

    def category_totals(self, expenses: List[Dict[str, Any]]) -> Dict[str, float]:
        totals: Dict[str, float] = defaultdict(float)
        for exp in expenses:
            totals[exp["category_id"]] += float(exp.get("amount", 0))
        return {cat: round(total, 2) for cat, total in totals.items()}

    def overspending_categories(
        self,
        expenses: List[Dict[str, Any]],
        budgeted: Dict[str, float],
    ) -> Dict[str, float]:
        """Categories whose spend is above what was budgeted for them."""
        totals = self.category_totals(expenses)
        return {
            cat: amount
            for cat, amount in totals.items()
            if cat in budgeted and amount > budgeted[cat]
        }

    def suggest_budget(self, expenses: List[Dict[str, Any]]) -> Dict[str, float]:
        """
        Suggests next month's budget per category: what was spent plus a
        configurable buffer.
        """
        return {
            cat: round(total * (1 + self._buffer_percentage), 2)
            for cat, total in self.category_totals(expenses).items()
        }

    def detect_spending_spikes(
        self,
        expenses: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """
        Detect outliers using Z-score heuristics to highlight unusual spends.
        """
        if not expenses:
            return []

        amounts = [float(exp.get("amount", 0)) for exp in expenses]
        mean = statistics.fmean(amounts)
        stdev = statistics.pstdev(amounts)

        anomalies: List[Dict[str, Any]] = []
        for exp in expenses:
            amount = float(exp.get("amount", 0))
            if amount < self._minimum_spike_amount:
                continue
            if stdev == 0:
                z_score = 0
            else:
                z_score = (amount - mean) / stdev
            if z_score >= self._spike_sigma:
                anomalies.append(exp)
        return anomalies

    def budget_insights(self, budget: Dict[str, Any], expenses: List[Dict[str, Any]]) -> Dict[str, Any]:
        categories = {c["category_id"]: c for c in budget.get("categories", [])}
        budgeted = {cid: float(c.get("amount_budgeted", 0)) for cid, c in categories.items()}

        category_map: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for exp in expenses:
            category_map[exp["category_id"]].append(exp)

        totals = self.category_totals(expenses)
        suggestions = self.suggest_budget(expenses)
        overspent = self.overspending_categories(expenses, budgeted)
        names = {cid: c.get("name") for cid, c in categories.items()}

        insights = [
            CategoryInsight(
                category_id=category_id,
                category=names.get(category_id, "Unknown"),
                total=totals[category_id],
                average=round(totals[category_id] / len(items), 2),
                transaction_count=len(items),
                amount_budgeted=budgeted.get(category_id, 0.0),
                overspent=category_id in overspent,
                suggested_budget=suggestions.get(category_id),
            ).to_dict()
            for category_id, items in category_map.items()
        ]
        insights.sort(key=lambda insight: insight["total"], reverse=True)

        spikes = [
            {**spike, "category": names.get(spike["category_id"], "Unknown")}
            for spike in self.detect_spending_spikes(expenses)
        ]

        return {
            "budget_id": budget["budget_id"],
            "year": budget["year"],
            "month": budget["month"],
            "total_spent": self.monthly_total(expenses),
            "overspending_categories": {names.get(cid, cid): amount for cid, amount in overspent.items()},
            "suggested_budgets": {names.get(cid, cid): amount for cid, amount in suggestions.items()},
            "spending_spikes": spikes,
            "insights": insights,
        }

    def daily_stats(self, expenses: List[Dict[str, Any]]) -> Dict[str, Any]:
        by_day: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for exp in expenses:
            by_day[_expense_datetime(exp).date().isoformat()].append(exp)

        unique_dates = []
        for day in sorted(by_day):
            items = by_day[day]
            largest = max(items, key=lambda e: float(e.get("amount", 0)))
            unique_dates.append({
                "date": day,
                "amount": self.monthly_total(items),
                "count": len(items),
                "description": largest.get("description", ""),
            })

        day_count = len(unique_dates)
        return {
            "daily_average_transaction": round(self.monthly_total(expenses) / day_count, 2) if day_count else 0.0,
            "total_day_count": day_count,
            "unique_expense_dates": unique_dates,
        }

    def weekly_stats(self, expenses: List[Dict[str, Any]], year: int, month: int) -> Dict[str, Any]:
        """Seven-day blocks counted from the 1st of the month; week 1 is days 1-7."""
        by_week: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        for exp in expenses:
            day = _expense_datetime(exp).day
            by_week[(day - 1) // WEEK_LENGTH_DAYS + 1].append(exp)

        weeks = []
        for week in sorted(by_week):
            start_day = (week - 1) * WEEK_LENGTH_DAYS + 1
            end_day = min(start_day + WEEK_LENGTH_DAYS - 1, _days_in_month(year, month))
            items = by_week[week]
            weeks.append({
                "week": week,
                "total_spent": self.monthly_total(items),
                "count": len(items),
                "date_range": {
                    "start": f"{year}-{month:02d}-{start_day:02d}",
                    "end": f"{year}-{month:02d}-{end_day:02d}",
                },
            })

        peak = max(weeks, key=lambda w: w["total_spent"]) if weeks else None
        return {
            "weeks": weeks,
            "average_weekly_spending": round(sum(w["total_spent"] for w in weeks) / len(weeks), 2) if weeks else 0.0,
            "peak_spending_week": peak,
        }

    def top_category(self, expenses: List[Dict[str, Any]], category_names: Dict[str, str]) -> Optional[Dict[str, Any]]:
        if not expenses:
            return None
        totals = self.category_totals(expenses)
        counts: Dict[str, int] = defaultdict(int)
        for exp in expenses:
            counts[exp["category_id"]] += 1
        category_id = max(totals, key=totals.get)
        return {
            "category_id": category_id,
            "category_name": category_names.get(category_id, "Unknown"),
            "total_spent": totals[category_id],
            "count": counts[category_id],
        }

    @staticmethod
    def monthly_trend(current_total: float, previous_total: float) -> float:
        """Percentage change of this month's total against the previous month."""
        if previous_total == 0:
            return 100.0 if current_total > 0 else 0.0
        return round((current_total - previous_total) / previous_total * 100, 2)

    def recent_transactions(self, expenses: List[Dict[str, Any]], category_names: Dict[str, str]):
        latest = sorted(expenses, key=lambda e: str(e.get("expense_date", "")), reverse=True)[:RECENT_TRANSACTIONS]
        return [
            {
                "expense_id": exp["expense_id"],
                "amount": float(exp.get("amount", 0)),
                "description": exp.get("description", ""),
                "category_id": exp["category_id"],
                "category_name": category_names.get(exp["category_id"], "Unknown"),
                "expense_date": exp["expense_date"],
                "formatted_date": _expense_datetime(exp).strftime("%b %d, %Y"),
            }
            for exp in latest
        ]

    def current_month(
        self,
        expenses: List[Dict[str, Any]],
        previous_expenses: List[Dict[str, Any]],
        category_names: Dict[str, str],
        year: int,
        month: int,
    ) -> Dict[str, Any]:
        total = self.monthly_total(expenses)
        count = len(expenses)
        largest = max(expenses, key=lambda e: float(e.get("amount", 0))) if expenses else None

        return {
            "year": year,
            "month": month,
            "month_name": month_name(month),
            "total_expenses_count": count,
            "total_expenses_sum": total,
            "avg_expense_amount": round(total / count, 2) if count else 0.0,
            "largest_transaction": largest,
            "daily_stats": self.daily_stats(expenses),
            "weekly_stats": self.weekly_stats(expenses, year, month),
            "top_category": self.top_category(expenses, category_names),
            "monthly_trend": self.monthly_trend(total, self.monthly_total(previous_expenses)),
            "recent_transactions": self.recent_transactions(expenses, category_names),
        }

    @staticmethod
    def budgets_overview(budgets: List[Dict[str, Any]]) -> Dict[str, Any]:
        rows = []
        for budget in sorted(budgets, key=lambda b: (b.get("year", 0), b.get("month", 0))):
            rows.append({
                "budget_id": budget["budget_id"],
                "year": budget["year"],
                "month": budget["month"],
                **budget_totals(budget),
            })

        totals = {
            "amount_budgeted": round(sum(r["amount_budgeted"] for r in rows), 2),
            "amount_spent": round(sum(r["amount_spent"] for r in rows), 2),
            "total_income": round(sum(r["total_income"] for r in rows), 2),
        }
        totals["budget_variance"] = round(totals["amount_budgeted"] - totals["amount_spent"], 2)
        totals["usage_percentage"] = (
            round(totals["amount_spent"] / totals["amount_budgeted"] * 100, 2) if totals["amount_budgeted"] else 0.0
        )
        return {"budgets": rows, "totals": totals}


def _days_in_month(year: int, month: int) -> int:
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    return (datetime(next_year, next_month, 1) - datetime(year, month, 1)).days
