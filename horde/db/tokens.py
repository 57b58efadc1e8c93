"""
Short-lived secrets: refresh tokens, password reset tokens and the one-time
codes used to hand a Google sign-in over to the client.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from horde.db import dynamo

logger = logging.getLogger(__name__)

REFRESH = "refresh"
PASSWORD_RESET = "password_reset"
AUTH_CODE = "auth_code"


def put_token(
    token: str,
    kind: str,
    expires_in_seconds: int,
    user_id: Optional[str] = None,
    payload: Optional[dict] = None,
) -> bool:
    item = {
        "token": token,
        "kind": kind,
        "user_id": user_id,
        "payload": payload or {},
        "revoked": False,
        "created_at": datetime.utcnow().isoformat(),
        "expires_at": dynamo.epoch_after(expires_in_seconds),
    }
    try:
        dynamo.tokens_table().put_item(Item=dynamo.to_dynamo(item))
        return True
    except ClientError as e:
        logger.error(f"put_token failed: {e.response['Error']['Message']}")
        return False


def get_token(token: str, kind: str) -> Optional[Dict[str, Any]]:
    """Return a token of the given kind unless it is unknown, expired or revoked."""
    try:
        response = dynamo.tokens_table().get_item(Key={"token": token})
    except ClientError as e:
        logger.error(f"get_token failed: {e.response['Error']['Message']}")
        return None

    item = response.get("Item")
    if not item:
        return None
    record = dynamo.from_dynamo(item)
    if record.get("kind") != kind or record.get("revoked") or dynamo.is_expired(record):
        return None
    return record


def revoke_token(token: str) -> bool:
    return dynamo.update_item(dynamo.tokens_table(), {"token": token}, {"revoked": True}) is not None


def delete_token(token: str) -> bool:
    try:
        dynamo.tokens_table().delete_item(Key={"token": token})
        return True
    except ClientError as e:
        logger.error(f"delete_token failed: {e.response['Error']['Message']}")
        return False


def get_expired_tokens() -> List[Dict[str, Any]]:
    try:
        items = dynamo.scan_all(dynamo.tokens_table())
    except ClientError as e:
        logger.error(f"get_expired_tokens failed: {e.response['Error']['Message']}")
        return []
    return [item for item in items if dynamo.is_expired(item)]
