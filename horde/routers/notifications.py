"""
Notifications Router
Lists the notifications stored for the user and tracks their read state
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from horde.core.security import get_current_user_id
from horde.db import notifications as notifications_db
from horde.utils.budgets import paginate

router = APIRouter()


def _active(user_id: str):
    return [n for n in notifications_db.get_notifications_for_user(user_id) if n.get("is_active", True)]


@router.get("")
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    read: Optional[bool] = None,
    user_id: str = Depends(get_current_user_id),
):
    """Newest first; expired notifications are left out."""
    notifications = _active(user_id)
    if read is not None:
        notifications = [n for n in notifications if bool(n.get("read")) == read]

    page_items, pagination = paginate(notifications, page, limit)
    return {"notifications": page_items, "pagination": pagination}


@router.get("/unread-count")
def unread_count(user_id: str = Depends(get_current_user_id)):
    return {"unread_count": sum(1 for n in _active(user_id) if not n.get("read"))}


@router.patch("/read-all")
def mark_all_read(user_id: str = Depends(get_current_user_id)):
    updated_count = 0
    for notification in _active(user_id):
        if notification.get("read"):
            continue
        if notifications_db.update_notification(user_id, notification["notification_id"], {"read": True}):
            updated_count += 1
    return {"message": "All notifications marked as read.", "updated_count": updated_count}


@router.patch("/{notification_id}/read")
def mark_read(notification_id: str, user_id: str = Depends(get_current_user_id)):
    updated = notifications_db.update_notification(user_id, notification_id, {"read": True})
    if not updated:
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification marked as read.", "notification": updated}
