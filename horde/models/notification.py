from datetime import datetime
from enum import Enum
from typing import Any, Dict
from uuid import uuid4

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    WELCOME = "welcome"
    BUDGET_CREATED = "budget_created"
    BUDGET_THRESHOLD = "budget_threshold"
    BUDGET_DELETED = "budget_deleted"
    EXPENSE_CREATED = "expense_created"
    SYSTEM = "system"


class NotificationInDB(BaseModel):
    user_id: str
    # Time-ordered so that the sort key follows creation order
    notification_id: str = Field(
        default_factory=lambda: f"{datetime.utcnow().strftime('%Y%m%d%H%M%S%f')}-{uuid4().hex[:8]}"
    )
    type: NotificationType
    title: str
    message: str
    read: bool = False
    is_active: bool = True
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    expires_at: int
