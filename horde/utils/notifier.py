"""
Notification factories. Each helper stores the notification and pushes it
to the user's real-time channel.
"""
import logging
from typing import Any, Dict, Optional

from horde.core import realtime
from horde.core.config import settings
from horde.db import dynamo
from horde.db import notifications as notifications_db
from horde.models.common import month_name
from horde.models.notification import NotificationInDB, NotificationType

logger = logging.getLogger(__name__)


def create_notification(
    user_id: str,
    notification_type: NotificationType,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    notification = NotificationInDB(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        data=data or {},
        expires_at=dynamo.epoch_after(settings.NOTIFICATION_EXPIRE_DAYS * 24 * 3600),
    ).model_dump(mode="json")

    if not notifications_db.put_notification(notification):
        logger.error(f"Could not store {notification_type.value} notification for user {user_id}")
        return None

    realtime.publish(user_id, "notification", notification)
    return notification


def notify_welcome(user_id: str):
    return create_notification(
        user_id,
        NotificationType.WELCOME,
        "Welcome to Horde",
        "Thanks for joining! Start tracking your finances by creating your first budget.",
        {"is_first_notification": True},
    )


def notify_budget_created(user_id: str, budget: Dict[str, Any]):
    return create_notification(
        user_id,
        NotificationType.BUDGET_CREATED,
        "Budget Created",
        f"Your budget for {month_name(budget['month'])} {budget['year']} has been created successfully.",
        {"budget_id": budget["budget_id"], "year": budget["year"], "month": budget["month"]},
    )


def notify_budget_threshold(user_id: str, budget: Dict[str, Any], percentage: int):
    return create_notification(
        user_id,
        NotificationType.BUDGET_THRESHOLD,
        "Budget Threshold Alert",
        f"Your {month_name(budget['month'])} {budget['year']} budget is at {percentage}% usage. "
        "Time to review your spending.",
        {"budget_id": budget["budget_id"], "threshold": percentage},
    )


def notify_budget_deleted(user_id: str, budget: Dict[str, Any]):
    return create_notification(
        user_id,
        NotificationType.BUDGET_DELETED,
        "Budget Deleted",
        f"Your budget for {month_name(budget['month'])} {budget['year']} has been deleted.",
        {"year": budget["year"], "month": budget["month"]},
    )
