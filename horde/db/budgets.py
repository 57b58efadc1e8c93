import logging
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from horde.db import dynamo

logger = logging.getLogger(__name__)


def get_budget(user_id: str, budget_id: str) -> Optional[Dict[str, Any]]:
    try:
        response = dynamo.budgets_table().get_item(Key={"user_id": user_id, "budget_id": budget_id})
        item = response.get("Item")
        return dynamo.from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_budget failed: {e.response['Error']['Message']}")
        return None


def get_budgets_for_user(user_id: str, year: Optional[int] = None) -> List[Dict[str, Any]]:
    """All budgets of a user, optionally limited to one year."""
    kwargs = {"KeyConditionExpression": Key("user_id").eq(user_id)}
    if year is not None:
        kwargs["FilterExpression"] = Attr("year").eq(year)
    try:
        return dynamo.query_all(dynamo.budgets_table(), **kwargs)
    except ClientError as e:
        logger.error(f"get_budgets_for_user failed: {e.response['Error']['Message']}")
        return []


def find_budget_by_month(user_id: str, year: int, month: int) -> Optional[Dict[str, Any]]:
    try:
        items = dynamo.query_all(
            dynamo.budgets_table(),
            KeyConditionExpression=Key("user_id").eq(user_id),
            FilterExpression=Attr("year").eq(year) & Attr("month").eq(month),
        )
        return items[0] if items else None
    except ClientError as e:
        logger.error(f"find_budget_by_month failed: {e.response['Error']['Message']}")
        return None


def put_budget(budget_item: dict) -> bool:
    """Insert or replace a budget document, embedded categories and sources included."""
    try:
        dynamo.budgets_table().put_item(Item=dynamo.to_dynamo(budget_item))
        return True
    except ClientError as e:
        logger.error(f"put_budget failed: {e.response['Error']['Message']}")
        return False


def delete_budget(user_id: str, budget_id: str) -> bool:
    try:
        response = dynamo.budgets_table().delete_item(
            Key={"user_id": user_id, "budget_id": budget_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in response
    except ClientError as e:
        logger.error(f"delete_budget failed: {e.response['Error']['Message']}")
        return False
