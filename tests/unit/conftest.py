import logging

import pytest
from botocore.stub import Stubber

from userpool_provider.aws.connect import AwsClientFactory, ServiceLevelClientFactory
from userpool_provider.resource_provider import ResourceRequest
from userpool_provider.testing.config import (
    TEST_AWS_ACCESS_KEY_ID,
    TEST_AWS_ACCOUNT_ID,
    TEST_AWS_REGION_NAME,
    TEST_AWS_SECRET_ACCESS_KEY,
)


@pytest.fixture(autouse=True)
def set_boto_test_credentials_and_region(monkeypatch):
    """
    Automatically sets the default credentials and region for all unit tests.
    """
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", TEST_AWS_ACCESS_KEY_ID)
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", TEST_AWS_SECRET_ACCESS_KEY)
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_AWS_REGION_NAME)


@pytest.fixture
def client_factory() -> ServiceLevelClientFactory:
    """A client factory with its own client cache, so stubbed clients do not leak into other tests."""
    return AwsClientFactory()(
        region_name=TEST_AWS_REGION_NAME,
        aws_access_key_id=TEST_AWS_ACCESS_KEY_ID,
        aws_secret_access_key=TEST_AWS_SECRET_ACCESS_KEY,
    )


@pytest.fixture
def cognito_stubber(client_factory):
    with Stubber(client_factory.cognito_idp) as stubber:
        yield stubber


@pytest.fixture
def create_resource_request():
    def _create(
        aws_client_factory,
        desired_state: dict,
        previous_state: dict = None,
        action: str = "Add",
        resource_type: str = "AWS::Cognito::UserPool",
    ) -> ResourceRequest:
        return ResourceRequest(
            _original_payload=desired_state,
            aws_client_factory=aws_client_factory,
            request_token="token-123",
            stack_name="test-stack",
            stack_id=f"arn:aws:cloudformation:{TEST_AWS_REGION_NAME}:{TEST_AWS_ACCOUNT_ID}:stack/test-stack/1",
            account_id=TEST_AWS_ACCOUNT_ID,
            region_name=TEST_AWS_REGION_NAME,
            action=action,
            desired_state=desired_state,
            logical_resource_id="UserPool",
            resource_type=resource_type,
            logger=logging.getLogger("test"),
            previous_state=previous_state,
        )

    return _create
