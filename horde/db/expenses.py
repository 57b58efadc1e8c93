import logging
from typing import Any, Dict, Iterable, List, Optional

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from horde.db import dynamo

logger = logging.getLogger(__name__)


def put_expense(expense_item: dict) -> bool:
    """Insert or update an expense for a user."""
    try:
        dynamo.expenses_table().put_item(Item=dynamo.to_dynamo(expense_item))
        return True
    except ClientError as e:
        logger.error(f"put_expense failed: {e.response['Error']['Message']}")
        return False


def put_expenses(expense_items: Iterable[dict]) -> bool:
    """Bulk insert through a batch writer."""
    try:
        with dynamo.expenses_table().batch_writer() as batch:
            for item in expense_items:
                batch.put_item(Item=dynamo.to_dynamo(item))
        return True
    except ClientError as e:
        logger.error(f"put_expenses failed: {e.response['Error']['Message']}")
        return False


def get_expense(user_id: str, expense_id: str) -> Optional[Dict[str, Any]]:
    try:
        response = dynamo.expenses_table().get_item(Key={"user_id": user_id, "expense_id": expense_id})
        item = response.get("Item")
        return dynamo.from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_expense failed: {e.response['Error']['Message']}")
        return None


def get_expenses_for_user(
    user_id: str,
    budget_id: Optional[str] = None,
    category_id: Optional[str] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Query a user's expenses, narrowed server-side by budget, category, year
    and month when given.
    """
    conditions = []
    if budget_id is not None:
        conditions.append(Attr("budget_id").eq(budget_id))
    if category_id is not None:
        conditions.append(Attr("category_id").eq(category_id))
    if year is not None:
        conditions.append(Attr("year").eq(year))
    if month is not None:
        conditions.append(Attr("month").eq(month))

    kwargs = {"KeyConditionExpression": Key("user_id").eq(user_id)}
    if conditions:
        filter_expression = conditions[0]
        for condition in conditions[1:]:
            filter_expression = filter_expression & condition
        kwargs["FilterExpression"] = filter_expression

    try:
        return dynamo.query_all(dynamo.expenses_table(), **kwargs)
    except ClientError as e:
        logger.error(f"get_expenses_for_user failed: {e.response['Error']['Message']}")
        return []


def update_expense(user_id: str, expense_id: str, updates: dict) -> Optional[Dict[str, Any]]:
    """Apply partial updates to an expense. Returns the updated item or None."""
    return dynamo.update_item(
        dynamo.expenses_table(),
        {"user_id": user_id, "expense_id": expense_id},
        updates,
    )


def delete_expense(user_id: str, expense_id: str) -> Optional[Dict[str, Any]]:
    """Delete a specific expense, returning the removed item."""
    try:
        response = dynamo.expenses_table().delete_item(
            Key={"user_id": user_id, "expense_id": expense_id},
            ReturnValues="ALL_OLD",
        )
        attributes = response.get("Attributes")
        return dynamo.from_dynamo(attributes) if attributes else None
    except ClientError as e:
        logger.error(f"delete_expense failed: {e.response['Error']['Message']}")
        return None


def delete_expenses(user_id: str, expense_ids: Iterable[str]) -> int:
    """Bulk delete; returns how many deletes were issued."""
    count = 0
    try:
        with dynamo.expenses_table().batch_writer() as batch:
            for expense_id in expense_ids:
                batch.delete_item(Key={"user_id": user_id, "expense_id": expense_id})
                count += 1
    except ClientError as e:
        logger.error(f"delete_expenses failed: {e.response['Error']['Message']}")
    return count
