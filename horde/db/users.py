import logging
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from horde.db import dynamo

logger = logging.getLogger(__name__)


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    """Query the Users table by email through the email-index GSI."""
    try:
        items = dynamo.query_all(
            dynamo.users_table(),
            IndexName="email-index",
            KeyConditionExpression=Key("email").eq(email.lower()),
        )
        return items[0] if items else None
    except ClientError as e:
        logger.error(f"get_user_by_email failed: {e.response['Error']['Message']}")
        return None


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    try:
        response = dynamo.users_table().get_item(Key={"user_id": user_id})
        item = response.get("Item")
        return dynamo.from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_user_by_id failed: {e.response['Error']['Message']}")
        return None


def put_user(user_item: dict) -> bool:
    """Insert or replace a user."""
    try:
        dynamo.users_table().put_item(Item=dynamo.to_dynamo(user_item))
        return True
    except ClientError as e:
        logger.error(f"put_user failed: {e.response['Error']['Message']}")
        return False


def update_user(user_id: str, updates: dict) -> Optional[Dict[str, Any]]:
    return dynamo.update_item(dynamo.users_table(), {"user_id": user_id}, updates)


def get_pending_user(pending_id: str) -> Optional[Dict[str, Any]]:
    """Fetch a pending signup; expired entries are treated as missing."""
    try:
        response = dynamo.pending_users_table().get_item(Key={"pending_id": pending_id})
        item = response.get("Item")
        if not item:
            return None
        pending = dynamo.from_dynamo(item)
        return None if dynamo.is_expired(pending) else pending
    except ClientError as e:
        logger.error(f"get_pending_user failed: {e.response['Error']['Message']}")
        return None


def get_pending_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    try:
        items = dynamo.query_all(
            dynamo.pending_users_table(),
            IndexName="email-index",
            KeyConditionExpression=Key("email").eq(email.lower()),
        )
    except ClientError as e:
        logger.error(f"get_pending_user_by_email failed: {e.response['Error']['Message']}")
        return None

    active = [item for item in items if not dynamo.is_expired(item)]
    return active[0] if active else None


def put_pending_user(pending_item: dict) -> bool:
    try:
        dynamo.pending_users_table().put_item(Item=dynamo.to_dynamo(pending_item))
        return True
    except ClientError as e:
        logger.error(f"put_pending_user failed: {e.response['Error']['Message']}")
        return False


def delete_pending_user(pending_id: str) -> bool:
    try:
        dynamo.pending_users_table().delete_item(Key={"pending_id": pending_id})
        return True
    except ClientError as e:
        logger.error(f"delete_pending_user failed: {e.response['Error']['Message']}")
        return False


def get_expired_pending_users() -> List[Dict[str, Any]]:
    try:
        items = dynamo.scan_all(dynamo.pending_users_table())
    except ClientError as e:
        logger.error(f"get_expired_pending_users failed: {e.response['Error']['Message']}")
        return []
    return [item for item in items if dynamo.is_expired(item)]
