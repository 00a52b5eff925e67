"""
Shared pytest fixtures.

Environment variables are set at module level — before any src/ imports —
so config.py reads the correct test values when fixtures are first evaluated.
"""

import os

# Must be set before any shared.* imports.
# Use setdefault so externally-passed env vars (integration tests) take precedence.
os.environ.setdefault("ENV", "test")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("AWS_REGION", "us-west-2")
os.environ.setdefault("DYNAMODB_RADIO_TABLE", "radio")
os.environ.setdefault("ADMIN_EMAIL", "admin@example.com")
os.environ.setdefault("NEXTAUTH_SECRET", "test-secret-32-chars-exactly-ok!")
os.environ.setdefault("ADMIN_API_KEY", "adm_test-key")
os.environ.setdefault("MILESTONE_POLICY", "lowest")

from datetime import datetime, timedelta, timezone

import boto3
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from moto import mock_aws


# ── Token helper ────────────────────────────────────────────────────────────────

def _make_token(
    email: str = "admin@example.com",
    secret: str = "test-secret-32-chars-exactly-ok!",
    expired: bool = False,
) -> str:
    exp = datetime.now(timezone.utc) + (
        timedelta(seconds=-1) if expired else timedelta(hours=1)
    )
    return jwt.encode({"email": email, "exp": exp}, secret, algorithm="HS256")


@pytest.fixture()
def make_token():
    return _make_token


@pytest.fixture()
def auth_headers():
    def _headers(email: str = "admin@example.com") -> dict[str, str]:
        return {"Authorization": f"Bearer {_make_token(email)}"}

    return _headers


# ── AWS fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture()
def aws_env():
    """Start moto mock, create the radio table + GSIs, yield, teardown."""
    with mock_aws():
        ddb = boto3.client("dynamodb", region_name="us-west-2")

        ddb.create_table(
            TableName="radio",
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
                {"AttributeName": "collection", "AttributeType": "S"},
                {"AttributeName": "totalSeconds", "AttributeType": "N"},
                {"AttributeName": "createdAt", "AttributeType": "S"},
                {"AttributeName": "nickname", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "leaderboard-index",
                    "KeySchema": [
                        {"AttributeName": "collection", "KeyType": "HASH"},
                        {"AttributeName": "totalSeconds", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
                {
                    "IndexName": "feed-index",
                    "KeySchema": [
                        {"AttributeName": "collection", "KeyType": "HASH"},
                        {"AttributeName": "createdAt", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
                {
                    "IndexName": "nickname-index",
                    "KeySchema": [
                        {"AttributeName": "nickname", "KeyType": "HASH"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        ddb.update_time_to_live(
            TableName="radio",
            TimeToLiveSpecification={"Enabled": True, "AttributeName": "expiresAt"},
        )

        yield


@pytest.fixture()
def table(aws_env):
    return boto3.resource("dynamodb", region_name="us-west-2").Table("radio")


@pytest.fixture()
def client(aws_env):
    """Public API TestClient with mocked AWS. Import app inside fixture so boto3
    clients are always created inside the mock_aws context."""
    from radio.handler import app  # noqa: PLC0415

    return TestClient(app, raise_server_exceptions=True)


@pytest.fixture()
def admin_client(aws_env):
    from admin.handler import app  # noqa: PLC0415

    return TestClient(app, raise_server_exceptions=True)
