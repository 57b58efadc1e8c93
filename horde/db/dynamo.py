import logging
import time
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from horde.core.config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_resource():
    """DynamoDB resource, created on first use so tests can swap the backend."""
    return boto3.resource(
        "dynamodb",
        region_name=settings.DYNAMO_REGION,
        endpoint_url=settings.DYNAMO_ENDPOINT_URL,
    )


def users_table():
    return get_resource().Table(settings.DYNAMO_USERS_TABLE)


def pending_users_table():
    return get_resource().Table(settings.DYNAMO_PENDING_USERS_TABLE)


def budgets_table():
    return get_resource().Table(settings.DYNAMO_BUDGETS_TABLE)


def expenses_table():
    return get_resource().Table(settings.DYNAMO_EXPENSES_TABLE)


def notifications_table():
    return get_resource().Table(settings.DYNAMO_NOTIFICATIONS_TABLE)


def tokens_table():
    return get_resource().Table(settings.DYNAMO_TOKENS_TABLE)


def _email_index():
    return [
        {
            "IndexName": "email-index",
            "KeySchema": [{"AttributeName": "email", "KeyType": "HASH"}],
            "Projection": {"ProjectionType": "ALL"},
        }
    ]


def table_definitions() -> List[Dict[str, Any]]:
    """Key schemas for every table the service uses."""
    return [
        {
            "TableName": settings.DYNAMO_USERS_TABLE,
            "KeySchema": [{"AttributeName": "user_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "user_id", "AttributeType": "S"},
                {"AttributeName": "email", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": _email_index(),
        },
        {
            "TableName": settings.DYNAMO_PENDING_USERS_TABLE,
            "KeySchema": [{"AttributeName": "pending_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "pending_id", "AttributeType": "S"},
                {"AttributeName": "email", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": _email_index(),
            "TimeToLive": "expires_at",
        },
        {
            "TableName": settings.DYNAMO_BUDGETS_TABLE,
            "KeySchema": [
                {"AttributeName": "user_id", "KeyType": "HASH"},
                {"AttributeName": "budget_id", "KeyType": "RANGE"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "user_id", "AttributeType": "S"},
                {"AttributeName": "budget_id", "AttributeType": "S"},
            ],
        },
        {
            "TableName": settings.DYNAMO_EXPENSES_TABLE,
            "KeySchema": [
                {"AttributeName": "user_id", "KeyType": "HASH"},
                {"AttributeName": "expense_id", "KeyType": "RANGE"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "user_id", "AttributeType": "S"},
                {"AttributeName": "expense_id", "AttributeType": "S"},
            ],
        },
        {
            "TableName": settings.DYNAMO_NOTIFICATIONS_TABLE,
            "KeySchema": [
                {"AttributeName": "user_id", "KeyType": "HASH"},
                {"AttributeName": "notification_id", "KeyType": "RANGE"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "user_id", "AttributeType": "S"},
                {"AttributeName": "notification_id", "AttributeType": "S"},
            ],
            "TimeToLive": "expires_at",
        },
        {
            "TableName": settings.DYNAMO_TOKENS_TABLE,
            "KeySchema": [{"AttributeName": "token", "KeyType": "HASH"}],
            "AttributeDefinitions": [{"AttributeName": "token", "AttributeType": "S"}],
            "TimeToLive": "expires_at",
        },
    ]


def create_tables() -> List[str]:
    """
    Create any missing table (on-demand billing) and enable TTL where the
    table carries an `expires_at` attribute. Returns the names created.
    """
    resource = get_resource()
    client = resource.meta.client
    existing = set(client.list_tables().get("TableNames", []))
    created = []

    for definition in table_definitions():
        definition = dict(definition)
        ttl_attribute = definition.pop("TimeToLive", None)
        name = definition["TableName"]
        if name in existing:
            continue

        table = resource.create_table(BillingMode="PAY_PER_REQUEST", **definition)
        table.wait_until_exists()
        if ttl_attribute:
            client.update_time_to_live(
                TableName=name,
                TimeToLiveSpecification={"Enabled": True, "AttributeName": ttl_attribute},
            )
        logger.info(f"Created DynamoDB table {name}")
        created.append(name)
    return created


def epoch_after(seconds: int) -> int:
    """Expiry timestamp (epoch seconds) `seconds` from now, as DynamoDB TTL expects."""
    return int(time.time()) + int(seconds)


def is_expired(item: Dict[str, Any]) -> bool:
    expires_at = item.get("expires_at")
    return expires_at is not None and int(expires_at) <= int(time.time())


def query_all(table, **kwargs) -> List[Dict[str, Any]]:
    """Run a query following LastEvaluatedKey until every page has been read."""
    items: List[Dict[str, Any]] = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            break
        kwargs["ExclusiveStartKey"] = last_key
    return [from_dynamo(item) for item in items]


def scan_all(table, **kwargs) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    while True:
        response = table.scan(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            break
        kwargs["ExclusiveStartKey"] = last_key
    return [from_dynamo(item) for item in items]


def update_item(table, key: Dict[str, Any], updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Apply partial updates to an existing item. Returns the updated item, or
    None when the item does not exist or the update failed.
    """
    if not updates:
        return None

    update_expression_parts = []
    expression_attribute_values = {}
    expression_attribute_names = {}

    for idx, (attr, value) in enumerate(updates.items()):
        placeholder = f"#f{idx}"
        value_placeholder = f":v{idx}"
        update_expression_parts.append(f"{placeholder} = {value_placeholder}")
        expression_attribute_names[placeholder] = attr
        expression_attribute_values[value_placeholder] = value

    # Only update items that already exist
    condition_parts = []
    for idx, key_name in enumerate(key):
        placeholder = f"#k{idx}"
        expression_attribute_names[placeholder] = key_name
        condition_parts.append(f"attribute_exists({placeholder})")

    try:
        response = table.update_item(
            Key=key,
            UpdateExpression="SET " + ", ".join(update_expression_parts),
            ConditionExpression=" AND ".join(condition_parts),
            ExpressionAttributeNames=expression_attribute_names,
            ExpressionAttributeValues=to_dynamo(expression_attribute_values),
            ReturnValues="ALL_NEW",
        )
        attributes = response.get("Attributes")
        return from_dynamo(attributes) if attributes else None
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            return None
        logger.error(f"update_item on {table.name} failed: {e.response['Error']['Message']}")
        return None


def to_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: to_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [to_dynamo(v) for v in obj]
    return obj


def from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
