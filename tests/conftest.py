"""Test configuration and fixtures for s3-download."""

from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

BUCKET = "test-bucket"


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Point boto3 at fake credentials so no test can reach real AWS."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def make_client_error():
    """Factory for botocore ClientErrors with a given code and HTTP status."""

    def _make(code: str = "InternalError", status: int = 500, operation="GetObject"):
        return ClientError(
            {
                "Error": {"Code": code, "Message": f"{code} for testing"},
                "ResponseMetadata": {"HTTPStatusCode": status},
            },
            operation,
        )

    return _make


@pytest.fixture
def mock_client_manager():
    """A client manager whose boto3 client is a Mock."""
    manager = Mock()
    manager.bucket_name = BUCKET
    manager.region_name = "us-east-1"
    manager.client = Mock()
    return manager


@pytest.fixture
def no_sleep():
    """Sleep replacement recording requested delays."""
    return Mock()
