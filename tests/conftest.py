import os

# Configure before the application modules read their settings
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ["ENVIRONMENT"] = "test"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["DYNAMO_CREATE_TABLES"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from horde.core.config import settings
from horde.core.security import create_access_token, hash_password
from horde.db import dynamo
from horde.db import users as users_db
from horde.models.common import Role
from horde.models.user import UserInDB

PASSWORD = "Str0ng!Pass"

BUDGET_PAYLOAD = {
    "currency": "USD",
    "year": 2024,
    "month": 5,
    "categories": [
        {"name": "Groceries", "amount_budgeted": 400},
        {"name": "Rent", "amount_budgeted": 1000},
    ],
    "income_sources": [
        {"name": "Salary", "amount": 3000},
        {"name": "Freelance", "amount": 1000, "frequency": "one-time", "recurring": False},
    ],
}


@pytest.fixture
def aws():
    with mock_aws():
        dynamo.get_resource.cache_clear()
        dynamo.create_tables()
        boto3.client("s3", region_name=settings.S3_REGION).create_bucket(
            Bucket=settings.S3_BUCKET_NAME,
            CreateBucketConfiguration={"LocationConstraint": settings.S3_REGION},
        )
        yield
    dynamo.get_resource.cache_clear()


@pytest.fixture
def client(aws):
    from horde.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(aws):
    def _make_user(email="ada@example.com", full_name="Ada Lovelace", roles=None):
        user = UserInDB(
            full_name=full_name,
            email=email,
            password_hash=hash_password(PASSWORD),
            roles=roles or [Role.USER],
        ).model_dump(mode="json")
        users_db.put_user(user)
        headers = {"Authorization": f"Bearer {create_access_token(data={'sub': user['user_id']})}"}
        return user, headers

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def auth_headers(user):
    return user[1]


@pytest.fixture
def budget(client, auth_headers):
    response = client.post("/api/v1/user/budget", json=BUDGET_PAYLOAD, headers=auth_headers)
    assert response.status_code == 201
    return response.json()["budget"]


def category_id(budget, name):
    return next(c["category_id"] for c in budget["categories"] if c["name"] == name)
