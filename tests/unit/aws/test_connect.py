from unittest.mock import MagicMock, patch

import boto3
import botocore
import pytest
from botocore.config import Config

from userpool_provider import config
from userpool_provider.aws.connect import AwsClientFactory, attribute_name_to_service_name


class TestClientFactory:
    @patch.object(AwsClientFactory, "_get_client")
    def test_client_credentials_loaded_from_env_if_set_to_none(self, mock, monkeypatch):
        monkeypatch.setattr(config, "AWS_ENDPOINT_URL", None)
        session = boto3.Session(region_name="eu-central-1")
        connect_to = AwsClientFactory(session=session)
        connect_to.get_client(
            "abc", region_name="xx-south-1", aws_access_key_id="foo", aws_secret_access_key="bar"
        )
        mock.assert_called_once_with(
            service_name="abc",
            region_name="xx-south-1",
            use_ssl=True,
            verify=True,
            endpoint_url=None,
            aws_access_key_id="foo",
            aws_secret_access_key="bar",
            aws_session_token=None,
            config=connect_to._config,
        )

        mock.reset_mock()

        connect_to.get_client("def", region_name=None, aws_secret_access_key=None, aws_access_key_id=None)
        mock.assert_called_once_with(
            service_name="def",
            region_name="eu-central-1",
            use_ssl=True,
            verify=True,
            endpoint_url=None,
            aws_access_key_id=None,
            aws_secret_access_key=None,
            aws_session_token=None,
            config=connect_to._config,
        )

    @patch.object(AwsClientFactory, "_get_client")
    def test_endpoint_url_from_config(self, mock, monkeypatch):
        monkeypatch.setattr(config, "AWS_ENDPOINT_URL", "http://localhost:4566")
        connect_to = AwsClientFactory()

        connect_to.get_client("cognito-idp", region_name="us-east-1")
        assert mock.call_args.kwargs["endpoint_url"] == "http://localhost:4566"

        connect_to.get_client("cognito-idp", region_name="us-east-1", endpoint_url="http://other:4566")
        assert mock.call_args.kwargs["endpoint_url"] == "http://other:4566"

    @patch.object(AwsClientFactory, "_get_session_region", return_value=None)
    @patch.object(AwsClientFactory, "_get_client")
    def test_region_falls_back_to_us_east_1(self, mock, _):
        AwsClientFactory().get_client("cognito-idp")
        assert mock.call_args.kwargs["region_name"] == "us-east-1"

    @pytest.mark.parametrize(
        "attribute_name,service_name",
        [
            ("cognito_idp", "cognito-idp"),
            ("cognito_identity", "cognito-identity"),
            ("lambda_", "lambda"),
            ("sts", "sts"),
        ],
    )
    def test_attribute_name_to_service_name(self, attribute_name, service_name):
        assert attribute_name_to_service_name(attribute_name) == service_name

    @pytest.mark.parametrize("service", ["cognito_idp", "iam", "sts"])
    def test_typed_client_creation(self, service):
        """Test the created client actually matching the requested service"""
        factory = AwsClientFactory()
        client = getattr(factory(), service)
        assert client.meta.service_model.service_name == attribute_name_to_service_name(service)

    def test_dunder_attributes_are_not_clients(self):
        with pytest.raises(AttributeError):
            AwsClientFactory()().__wrapped__

    def test_client_caching(self):
        """Same factory for the same service should result in the same client.
        Different factories should result in different (identity wise) clients"""
        factory = AwsClientFactory()
        assert factory().cognito_idp is factory().cognito_idp
        factory_2 = AwsClientFactory()
        assert factory().cognito_idp is not factory_2().cognito_idp

    def test_client_caching_with_config(self):
        config_1 = Config(read_timeout=2, signature_version=botocore.UNSIGNED)
        config_2 = Config(read_timeout=2, signature_version=botocore.UNSIGNED)
        config_3 = Config(read_timeout=3, signature_version=botocore.UNSIGNED)
        factory = AwsClientFactory()
        client_1 = factory(config=config_1).cognito_idp
        client_2 = factory(config=config_2).cognito_idp
        client_3 = factory(config=config_3).cognito_idp
        assert client_1 is client_2
        assert client_2 is not client_3

    def test_retries_disabled_by_default(self, monkeypatch):
        monkeypatch.setattr(config, "DISABLE_BOTO_RETRIES", True)
        session = MagicMock()
        AwsClientFactory(session=session).get_client("cognito-idp", region_name="us-east-1")

        client_config = session.client.call_args.kwargs["config"]
        assert client_config.retries == {"max_attempts": 0}
        assert client_config.max_pool_connections == 150

    def test_retries_enabled(self, monkeypatch):
        monkeypatch.setattr(config, "DISABLE_BOTO_RETRIES", False)
        session = MagicMock()
        AwsClientFactory(session=session).get_client("cognito-idp", region_name="us-east-1")

        client_config = session.client.call_args.kwargs["config"]
        assert client_config.retries is None

    def test_region_override(self):
        # the region argument always takes precedence over the region of the config
        factory = AwsClientFactory()

        client_config = botocore.config.Config(region_name="eu-north-1")

        assert factory(region_name="us-east-1", config=client_config).cognito_idp.meta.region_name == "us-east-1"
        assert factory(region_name="us-west-1", config=client_config).cognito_idp.meta.region_name == "us-west-1"
        assert factory(config=client_config).cognito_idp.meta.region_name == "eu-north-1"
