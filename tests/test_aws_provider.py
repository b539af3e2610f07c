"""Tests for the AWS provider"""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, NoCredentialsError

from cloudcommit.core.base.models import CacheDetails, ServiceType
from cloudcommit.core.config import AWSConfig
from cloudcommit.core.exceptions import AuthenticationError, ValidationError
from cloudcommit.providers.aws import AWSProvider
from cloudcommit.providers.aws.ec2 import EC2Client
from cloudcommit.providers.aws.elasticache import ElastiCacheClient
from cloudcommit.providers.aws.memorydb import MemoryDBClient
from cloudcommit.providers.aws.redshift import RedshiftClient

pytestmark = pytest.mark.aws


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def provider(session):
    return AWSProvider(AWSConfig(default_region="us-west-2"), session=session)


class TestAWSProvider:
    """Test AWSProvider class"""

    @patch("cloudcommit.providers.aws.client.boto3.Session")
    def test_profile_session(self, mock_session):
        provider = AWSProvider(AWSConfig(profile="prod"))
        assert provider.session is mock_session.return_value
        mock_session.assert_called_once_with(profile_name="prod")

    @patch("cloudcommit.providers.aws.client.boto3.Session")
    def test_assume_role(self, mock_session):
        base_session = MagicMock()
        base_session.client.return_value.assume_role.return_value = {"Credentials": {
            "AccessKeyId": "AKIA", "SecretAccessKey": "secret", "SessionToken": "token",
        }}
        mock_session.side_effect = [base_session, MagicMock()]
        provider = AWSProvider(AWSConfig(role_arn="arn:aws:iam::123456789012:role/buyer", external_id="ext"))

        _ = provider.session

        base_session.client.return_value.assume_role.assert_called_once_with(
            RoleArn="arn:aws:iam::123456789012:role/buyer", RoleSessionName="cloudcommit", ExternalId="ext",
        )
        mock_session.assert_called_with(
            aws_access_key_id="AKIA", aws_secret_access_key="secret", aws_session_token="token",
        )

    @patch("cloudcommit.providers.aws.client.boto3.Session")
    def test_assume_role_failure(self, mock_session):
        mock_session.return_value.client.return_value.assume_role.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "no"}}, "AssumeRole",
        )
        provider = AWSProvider(AWSConfig(role_arn="arn:aws:iam::123456789012:role/buyer"))

        with pytest.raises(AuthenticationError):
            _ = provider.session

    def test_client_caching(self, provider, session):
        first = provider.get_client("redshift")
        second = provider.get_client("redshift")

        assert first is second
        session.client.assert_called_once()
        assert session.client.call_args.kwargs["region_name"] == "us-west-2"

    def test_validate_credentials(self, provider, session):
        session.client.return_value.get_caller_identity.return_value = {
            "Account": "123456789012", "Arn": "arn:aws:iam::123456789012:user/test",
        }
        assert provider.validate_credentials()
        assert provider.get_account_id() == "123456789012"

    def test_validate_credentials_missing(self, provider, session):
        session.client.return_value.get_caller_identity.side_effect = NoCredentialsError()
        assert not provider.validate_credentials()

    def test_get_accounts_outside_organization(self, provider, session):
        clients = {"organizations": MagicMock(), "sts": MagicMock()}
        clients["organizations"].get_paginator.return_value.paginate.side_effect = ClientError(
            {"Error": {"Code": "AWSOrganizationsNotInUseException", "Message": "no"}}, "ListAccounts",
        )
        clients["sts"].get_caller_identity.return_value = {"Account": "123456789012"}
        session.client.side_effect = lambda service, **kwargs: clients[service]

        accounts = provider.get_accounts()
        assert [a.account_id for a in accounts] == ["123456789012"]

    def test_get_regions(self, provider, session):
        session.client.return_value.describe_regions.return_value = {
            "Regions": [{"RegionName": "us-west-2"}, {"RegionName": "eu-west-1"}],
        }
        assert provider.get_regions() == ["eu-west-1", "us-west-2"]

    def test_service_clients(self, provider):
        redshift = provider.get_service_client(ServiceType.DATA_WAREHOUSE, "us-east-1")

        assert isinstance(redshift, RedshiftClient)
        assert redshift.region == "us-east-1"
        assert provider.get_service_client(ServiceType.DATA_WAREHOUSE, "us-east-1") is redshift
        assert isinstance(provider.get_service_client(ServiceType.COMPUTE), EC2Client)
        assert provider.get_service_client(ServiceType.COMPUTE).region == "us-west-2"

    def test_unsupported_service(self, provider):
        with pytest.raises(ValidationError):
            provider.get_service_client(ServiceType.NOSQL)

    def test_client_for_routes_memorydb(self, provider, make_recommendation):
        memorydb = make_recommendation(service=ServiceType.CACHE, resource_type="db.r6g.large",
                                       details=CacheDetails(engine="MemoryDB"))
        redis = make_recommendation(service=ServiceType.CACHE, resource_type="cache.r6g.large",
                                    details=CacheDetails(engine="redis"))

        assert isinstance(provider.client_for(memorydb), MemoryDBClient)
        assert isinstance(provider.client_for(redis), ElastiCacheClient)

    def test_get_recommendations_uses_us_east_1(self, provider, session, make_recommendation):
        with patch("cloudcommit.providers.aws.client.CostExplorerRecommendations") as advisor_cls:
            advisor_cls.return_value.get_recommendations.return_value = [make_recommendation()]
            params = MagicMock()

            assert len(provider.get_recommendations(params)) == 1

        assert session.client.call_args.args == ("ce",)
        assert session.client.call_args.kwargs["region_name"] == "us-east-1"

    def test_provider_info(self, provider, session):
        info = provider.get_provider_info()
        assert info["provider"] == "aws"
        assert info["default_region"] == "us-west-2"
        assert "savings-plans" in info["services"]
