import logging
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from horde.db import dynamo

logger = logging.getLogger(__name__)


def put_notification(notification_item: dict) -> bool:
    try:
        dynamo.notifications_table().put_item(Item=dynamo.to_dynamo(notification_item))
        return True
    except ClientError as e:
        logger.error(f"put_notification failed: {e.response['Error']['Message']}")
        return False


def get_notifications_for_user(user_id: str, include_expired: bool = False) -> List[Dict[str, Any]]:
    """A user's notifications, newest first."""
    try:
        items = dynamo.query_all(
            dynamo.notifications_table(),
            KeyConditionExpression=Key("user_id").eq(user_id),
        )
    except ClientError as e:
        logger.error(f"get_notifications_for_user failed: {e.response['Error']['Message']}")
        return []

    if not include_expired:
        items = [item for item in items if not dynamo.is_expired(item)]
    return sorted(items, key=lambda item: item.get("created_at", ""), reverse=True)


def get_notification(user_id: str, notification_id: str) -> Optional[Dict[str, Any]]:
    try:
        response = dynamo.notifications_table().get_item(
            Key={"user_id": user_id, "notification_id": notification_id}
        )
        item = response.get("Item")
        return dynamo.from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_notification failed: {e.response['Error']['Message']}")
        return None


def update_notification(user_id: str, notification_id: str, updates: dict) -> Optional[Dict[str, Any]]:
    return dynamo.update_item(
        dynamo.notifications_table(),
        {"user_id": user_id, "notification_id": notification_id},
        updates,
    )


def delete_expired_notifications() -> int:
    """Remove every expired notification across all users."""
    try:
        items = dynamo.scan_all(dynamo.notifications_table())
        expired = [item for item in items if dynamo.is_expired(item)]
        with dynamo.notifications_table().batch_writer() as batch:
            for item in expired:
                batch.delete_item(
                    Key={"user_id": item["user_id"], "notification_id": item["notification_id"]}
                )
        return len(expired)
    except ClientError as e:
        logger.error(f"delete_expired_notifications failed: {e.response['Error']['Message']}")
        return 0
