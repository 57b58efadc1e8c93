"""
Health Check Router
Liveness endpoint plus a status report of the AWS services the API uses
"""
from fastapi import APIRouter
from datetime import datetime
import logging

from botocore.exceptions import BotoCoreError, ClientError

from horde.core.config import settings
from horde.db import dynamo
from horde.utils.pdf_report import get_s3_client
from horde.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)

TABLES = {
    "users": dynamo.users_table,
    "pending_users": dynamo.pending_users_table,
    "budgets": dynamo.budgets_table,
    "expenses": dynamo.expenses_table,
    "notifications": dynamo.notifications_table,
    "tokens": dynamo.tokens_table,
}


@router.get("/health")
def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/status")
def aws_services_status():
    """
    Check connectivity of the DynamoDB tables, the reports bucket and the
    background scheduler.
    """
    status = {
        "timestamp": datetime.utcnow().isoformat(),
        "services": {}
    }

    dynamodb_status = {
        "connected": False,
        "region": settings.DYNAMO_REGION,
        "tables": {},
    }
    for label, table in TABLES.items():
        table_status = {"name": table().name}
        try:
            table().scan(Limit=1)
            table_status["status"] = "accessible"
        except (ClientError, BotoCoreError) as e:
            table_status["status"] = "error"
            table_status["error"] = str(e)
            logger.error(f"DynamoDB check failed for {label}: {str(e)}")
        dynamodb_status["tables"][label] = table_status

    dynamodb_status["connected"] = all(
        t["status"] == "accessible" for t in dynamodb_status["tables"].values()
    )
    status["services"]["dynamodb"] = dynamodb_status

    s3_status = {
        "connected": False,
        "bucket": settings.S3_BUCKET_NAME,
        "region": settings.S3_REGION,
        "error": None
    }
    try:
        get_s3_client().head_bucket(Bucket=settings.S3_BUCKET_NAME)
        s3_status["connected"] = True
        s3_status["status"] = "accessible"
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        s3_status["error"] = f"{error_code}: {str(e)}"
        s3_status["status"] = "error"
        logger.error(f"S3 check failed: {str(e)}")
    except BotoCoreError as e:
        s3_status["error"] = str(e)
        s3_status["status"] = "error"
        logger.error(f"S3 check failed: {str(e)}")

    status["services"]["s3"] = s3_status

    scheduler_status = get_scheduler_status()
    # A scheduler switched off by configuration is not a fault
    scheduler_status["connected"] = scheduler_status["running"] or not settings.SCHEDULER_ENABLED
    status["services"]["scheduler"] = scheduler_status

    all_connected = all(
        service.get("connected", False)
        for service in status["services"].values()
    )

    status["overall_status"] = "healthy" if all_connected else "degraded"

    return status
