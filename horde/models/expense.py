from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class ExpenseSortField(str, Enum):
    AMOUNT = "amount"
    EXPENSE_DATE = "expense_date"
    CREATED_AT = "created_at"


class ExpenseCreate(BaseModel):
    budget_id: str
    category_id: str
    amount: float = Field(gt=0)
    description: str
    expense_date: datetime = Field(default_factory=datetime.utcnow)


class ExpenseUpdate(BaseModel):
    budget_id: str
    category_id: str
    amount: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = None
    expense_date: Optional[datetime] = None


class ExpenseBulkDelete(BaseModel):
    budget_id: str
    category_id: Optional[str] = None


class ExpenseInDB(BaseModel):
    user_id: str
    expense_id: str = Field(default_factory=lambda: str(uuid4()))
    budget_id: str
    category_id: str
    amount: float
    description: str = ""
    expense_date: str
    year: int
    month: int
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


class ExpensePublic(BaseModel):
    expense_id: str
    budget_id: str
    category_id: str
    amount: float
    description: str = ""
    expense_date: str
    year: int
    month: int
    created_at: str
    updated_at: Optional[str] = None
