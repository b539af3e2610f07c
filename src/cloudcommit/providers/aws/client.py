import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ...core.base.models import Account, CacheDetails, Recommendation, RecommendationParams, ServiceType
from ...core.base.provider import CloudProvider
from ...core.config import AWSConfig, RetryConfig
from ...core.exceptions import AuthenticationError, TransportError, ValidationError
from ...core.ratelimit import RetryPolicy
from .base import AWSServiceClient
from .ec2 import EC2Client
from .elasticache import ElastiCacheClient
from .memorydb import MemoryDBClient
from .opensearch import OpenSearchClient
from .recommendations import CostExplorerRecommendations
from .redshift import RedshiftClient
from .rds import RDSClient
from .savingsplans import SavingsPlansClient

# Cost Explorer is a global API served from us-east-1
COST_EXPLORER_REGION = "us-east-1"

SERVICE_CLIENTS = {
    ServiceType.COMPUTE: ("ec2", EC2Client),
    ServiceType.RELATIONAL_DB: ("rds", RDSClient),
    ServiceType.CACHE: ("elasticache", ElastiCacheClient),
    ServiceType.SEARCH: ("opensearch", OpenSearchClient),
    ServiceType.DATA_WAREHOUSE: ("redshift", RedshiftClient),
    ServiceType.SAVINGS_PLANS: ("savingsplans", SavingsPlansClient),
}

MEMORYDB_CLIENT = ("memorydb", MemoryDBClient)


class AWSProvider(CloudProvider):
    """AWS cloud provider implementation"""

    name = "aws"
    display_name = "Amazon Web Services"

    def __init__(self, config: Optional[AWSConfig] = None, retry: Optional[RetryConfig] = None,
                 session: Optional[boto3.Session] = None):
        self.config = config or AWSConfig()
        self.retry = retry or RetryConfig()
        self._session = session
        self._account_id: Optional[str] = None
        self.clients: Dict[str, Any] = {}
        self.service_clients: Dict[str, AWSServiceClient] = {}
        self.logger = logging.getLogger(__name__)

    @property
    def session(self) -> boto3.Session:
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> boto3.Session:
        if self.config.profile:
            session = boto3.Session(profile_name=self.config.profile)
        else:
            session = boto3.Session()

        if not self.config.role_arn:
            return session

        params = {"RoleArn": self.config.role_arn, "RoleSessionName": "cloudcommit"}
        if self.config.external_id:
            params["ExternalId"] = self.config.external_id
        try:
            credentials = session.client("sts").assume_role(**params)["Credentials"]
        except (ClientError, BotoCoreError) as e:
            raise AuthenticationError(f"Failed to assume role {self.config.role_arn}: {e}")

        self.logger.info(f"Assumed role {self.config.role_arn}")
        return boto3.Session(
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
        )

    def get_client(self, service: str, region: Optional[str] = None):
        """Get or create a boto3 client for a service"""
        region = region or self.get_default_region()
        client_key = f"{service}_{region}"

        if client_key not in self.clients:
            config = Config(
                retries={"max_attempts": self.config.max_attempts, "mode": "adaptive"},
                connect_timeout=self.config.timeout,
                read_timeout=self.config.timeout,
            )
            self.clients[client_key] = self.session.client(service, region_name=region, config=config)

        return self.clients[client_key]

    def is_configured(self) -> bool:
        try:
            return self.session.get_credentials() is not None
        except BotoCoreError:
            return False

    def validate_credentials(self) -> bool:
        """Validate AWS credentials"""
        try:
            identity = self.get_client("sts").get_caller_identity()
        except NoCredentialsError:
            self.logger.error("No AWS credentials found")
            return False
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"AWS credential validation failed: {e}")
            return False

        self._account_id = identity["Account"]
        self.logger.info(f"Authenticated as: {identity['Arn']}")
        return True

    def get_account_id(self) -> str:
        if self._account_id is None:
            try:
                self._account_id = self.get_client("sts").get_caller_identity()["Account"]
            except (ClientError, BotoCoreError) as e:
                raise AuthenticationError(f"Failed to get AWS account identity: {e}")
        return self._account_id

    def get_accounts(self) -> List[Account]:
        """Organization member accounts, or the caller's own account outside an organization"""
        try:
            paginator = self.get_client("organizations").get_paginator("list_accounts")
            accounts = []
            for page in paginator.paginate():
                for item in page.get("Accounts", []):
                    accounts.append(Account(
                        account_id=item["Id"],
                        name=item.get("Name", ""),
                        email=item.get("Email", ""),
                        status=item.get("Status", ""),
                    ))
            return accounts
        except ClientError as e:
            self.logger.warning(f"Cannot list organization accounts, using caller account: {e}")
            return [Account(account_id=self.get_account_id())]

    def get_regions(self) -> List[str]:
        """Get list of available AWS regions"""
        try:
            response = self.get_client("ec2", region=self.get_default_region()).describe_regions()
        except (ClientError, BotoCoreError) as e:
            raise TransportError("Failed to list AWS regions", e)
        return sorted(region["RegionName"] for region in response["Regions"])

    def get_default_region(self) -> str:
        return self.config.default_region

    def get_supported_services(self) -> List[ServiceType]:
        return list(SERVICE_CLIENTS)

    def _service_client(self, boto_service: str, client_cls: type, region: str) -> AWSServiceClient:
        key = f"{boto_service}_{region}"
        if key not in self.service_clients:
            self.service_clients[key] = client_cls(
                self.get_client(boto_service, region), region, account=self._account_id or "",
            )
        return self.service_clients[key]

    def get_service_client(self, service: ServiceType, region: Optional[str] = None) -> AWSServiceClient:
        if service not in SERVICE_CLIENTS:
            raise ValidationError(f"AWS does not support commitments for {service.value}")
        boto_service, client_cls = SERVICE_CLIENTS[service]
        return self._service_client(boto_service, client_cls, region or self.get_default_region())

    def client_for(self, recommendation: Recommendation) -> AWSServiceClient:
        details = recommendation.details
        if isinstance(details, CacheDetails) and details.engine.lower() == "memorydb":
            boto_service, client_cls = MEMORYDB_CLIENT
            return self._service_client(boto_service, client_cls, recommendation.region or self.get_default_region())
        return super().client_for(recommendation)

    def get_recommendations(self, params: RecommendationParams) -> List[Recommendation]:
        advisor = CostExplorerRecommendations(
            self.get_client("ce", region=COST_EXPLORER_REGION),
            RetryPolicy.from_config(self.retry),
        )
        return advisor.get_recommendations(params)
