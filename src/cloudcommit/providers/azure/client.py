import logging
import os
from typing import Any, Dict, List, Optional

import httpx
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import ClientSecretCredential, DefaultAzureCredential

from ...core.base.models import Account, Recommendation, RecommendationParams, ServiceType
from ...core.base.provider import CloudProvider
from ...core.config import AzureConfig, RetryConfig
from ...core.exceptions import AuthenticationError, ConfigurationError, ValidationError
from ...core.ratelimit import RetryPolicy
from .recommendations import ConsumptionRecommendations
from .reservations import (
    AzureComputeClient,
    AzureCosmosDBClient,
    AzureRedisClient,
    AzureReservationClient,
    AzureSearchClient,
    AzureSQLClient,
)
from .rest import MANAGEMENT_URL, AzureRestClient

SUBSCRIPTIONS_API_VERSION = "2022-12-01"

SERVICE_CLIENTS = {
    ServiceType.COMPUTE: AzureComputeClient,
    ServiceType.RELATIONAL_DB: AzureSQLClient,
    ServiceType.CACHE: AzureRedisClient,
    ServiceType.SEARCH: AzureSearchClient,
    ServiceType.NOSQL: AzureCosmosDBClient,
}


class AzureProvider(CloudProvider):
    """Azure cloud provider implementation"""

    name = "azure"
    display_name = "Microsoft Azure"

    def __init__(self, config: Optional[AzureConfig] = None, retry: Optional[RetryConfig] = None,
                 credential: Any = None, http: Optional[httpx.Client] = None):
        self.config = config or AzureConfig()
        self.retry = retry or RetryConfig()
        self._credential = credential
        self._http = http
        self._rest: Optional[AzureRestClient] = None
        self.service_clients: Dict[str, AzureReservationClient] = {}
        self.logger = logging.getLogger(__name__)

    @property
    def credential(self) -> Any:
        if self._credential is None:
            cfg = self.config
            if cfg.tenant_id and cfg.client_id and cfg.client_secret:
                self._credential = ClientSecretCredential(
                    cfg.tenant_id, cfg.client_id, cfg.client_secret.get_secret_value(),
                )
            else:
                self._credential = DefaultAzureCredential()
        return self._credential

    @property
    def rest(self) -> AzureRestClient:
        if self._rest is None:
            self._rest = AzureRestClient(self.credential, http=self._http, timeout=self.config.timeout)
        return self._rest

    @property
    def subscription_id(self) -> str:
        subscription_id = self.config.subscription_id or os.environ.get("AZURE_SUBSCRIPTION_ID")
        if not subscription_id:
            raise ConfigurationError("Azure subscription_id is not configured")
        return subscription_id

    def is_configured(self) -> bool:
        cfg = self.config
        has_secret = bool(cfg.tenant_id and cfg.client_id and cfg.client_secret)
        has_env = bool(os.environ.get("AZURE_CLIENT_ID") or os.environ.get("AZURE_TENANT_ID"))
        return bool(cfg.subscription_id or os.environ.get("AZURE_SUBSCRIPTION_ID")) and (
            has_secret or has_env or self._credential is not None
        )

    def validate_credentials(self) -> bool:
        try:
            self.rest.token()
        except (AuthenticationError, ClientAuthenticationError) as e:
            self.logger.error(f"Azure credential validation failed: {e}")
            return False
        return True

    def get_accounts(self) -> List[Account]:
        """Subscriptions visible to the credential"""
        return [
            Account(
                account_id=item["subscriptionId"],
                name=item.get("displayName", ""),
                status=item.get("state", ""),
            )
            for item in self.rest.iter_values(
                f"{MANAGEMENT_URL}/subscriptions", {"api-version": SUBSCRIPTIONS_API_VERSION},
            )
            if item.get("subscriptionId")
        ]

    def get_regions(self) -> List[str]:
        locations = self.rest.iter_values(
            f"{MANAGEMENT_URL}/subscriptions/{self.subscription_id}/locations",
            {"api-version": SUBSCRIPTIONS_API_VERSION},
        )
        return sorted(item["name"] for item in locations if item.get("name"))

    def get_default_region(self) -> str:
        return self.config.default_region

    def get_supported_services(self) -> List[ServiceType]:
        return list(SERVICE_CLIENTS)

    def get_service_client(self, service: ServiceType, region: Optional[str] = None) -> AzureReservationClient:
        if service not in SERVICE_CLIENTS:
            raise ValidationError(f"Azure does not support reservations for {service.value}")
        region = region or self.get_default_region()
        key = f"{service.value}_{region}"
        if key not in self.service_clients:
            self.service_clients[key] = SERVICE_CLIENTS[service](
                self.rest, self.subscription_id, region, retry_policy=RetryPolicy.from_config(self.retry),
            )
        return self.service_clients[key]

    def get_recommendations(self, params: RecommendationParams) -> List[Recommendation]:
        return ConsumptionRecommendations(self.rest, self.subscription_id).get_recommendations(params)
