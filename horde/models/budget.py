from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from horde.models.common import Currency


def _current_year() -> int:
    return datetime.utcnow().year


def _current_month() -> int:
    return datetime.utcnow().month


def _now() -> str:
    return datetime.utcnow().isoformat()


class Frequency(str, Enum):
    MONTHLY = "monthly"
    ONE_TIME = "one-time"


def _required_name(value: Optional[str], message: str) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError(message)
    return value


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    amount_budgeted: float = Field(ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return _required_name(value, "Category name is required")


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    amount_budgeted: Optional[float] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        return _required_name(value, "Category name is required")


class IncomeSourceCreate(BaseModel):
    name: str = Field(min_length=1)
    amount: float = Field(ge=0)
    description: Optional[str] = None
    recurring: bool = True
    frequency: Frequency = Frequency.MONTHLY

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return _required_name(value, "Budget source name is required")


class IncomeSourceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    recurring: Optional[bool] = None
    frequency: Optional[Frequency] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        return _required_name(value, "Budget source name is required")


class BudgetCreate(BaseModel):
    currency: Currency = Currency.NGN
    year: int = Field(default_factory=_current_year, ge=2000, le=2099)
    month: int = Field(default_factory=_current_month, ge=1, le=12)
    categories: List[CategoryCreate] = Field(min_length=1)
    income_sources: List[IncomeSourceCreate] = Field(min_length=1)


class BudgetUpdate(BaseModel):
    currency: Optional[Currency] = None
    year: Optional[int] = Field(default=None, ge=2000, le=2099)
    month: Optional[int] = Field(default=None, ge=1, le=12)


class ExpensesStats(BaseModel):
    total_amount: float = 0.0
    count: int = 0
    average_amount: float = 0.0
    min_amount: float = 0.0
    max_amount: float = 0.0


class CategoryInDB(BaseModel):
    category_id: str = Field(default_factory=lambda: str(uuid4()))
    key: str
    name: str
    amount_budgeted: float
    amount_spent: float = 0.0
    expenses_stats: ExpensesStats = Field(default_factory=ExpensesStats)
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)


class IncomeSourceInDB(BaseModel):
    source_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    amount: float
    description: Optional[str] = None
    recurring: bool = True
    frequency: Frequency = Frequency.MONTHLY
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)


class BudgetInDB(BaseModel):
    user_id: str
    budget_id: str = Field(default_factory=lambda: str(uuid4()))
    year: int
    month: int
    currency: Currency = Currency.NGN
    currency_sym: str
    categories: List[CategoryInDB] = Field(default_factory=list)
    income_sources: List[IncomeSourceInDB] = Field(default_factory=list)
    last_expense_date: Optional[str] = None
    notified_thresholds: List[int] = Field(default_factory=list)
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)
