import logging
import os
from typing import Any, Dict, List, Optional

import google.auth
from google.api_core.exceptions import GoogleAPICallError
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import compute_v1
from google.oauth2 import service_account

from ...core.base.models import Account, ServiceType
from ...core.base.provider import CloudProvider
from ...core.config import GCPConfig
from ...core.exceptions import AuthenticationError, ConfigurationError, TransportError, ValidationError
from .compute import ComputeEngineClient
from .pricing import BillingCatalogPricing

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class GCPProvider(CloudProvider):
    """Google Cloud provider implementation"""

    name = "gcp"
    display_name = "Google Cloud Platform"

    def __init__(self, config: Optional[GCPConfig] = None, credentials: Any = None):
        self.config = config or GCPConfig()
        self._credentials = credentials
        self._project_id: Optional[str] = self.config.project_id
        self.service_clients: Dict[str, ComputeEngineClient] = {}
        self.logger = logging.getLogger(__name__)

    def _load_credentials(self) -> Any:
        if self.config.credentials_path:
            try:
                return service_account.Credentials.from_service_account_file(
                    str(self.config.credentials_path), scopes=[CLOUD_PLATFORM_SCOPE],
                )
            except (OSError, ValueError) as e:
                raise AuthenticationError(f"Failed to load GCP credentials from {self.config.credentials_path}: {e}")
        try:
            credentials, project_id = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
        except DefaultCredentialsError as e:
            raise AuthenticationError(f"No GCP application default credentials: {e}")
        if not self._project_id:
            self._project_id = project_id
        return credentials

    @property
    def credentials(self) -> Any:
        if self._credentials is None:
            self._credentials = self._load_credentials()
        return self._credentials

    @property
    def project_id(self) -> str:
        if not self._project_id:
            self._project_id = os.environ.get("GOOGLE_CLOUD_PROJECT")
        if not self._project_id and self._credentials is None:
            # Application default credentials may name the project
            self._credentials = self._load_credentials()
        if not self._project_id:
            raise ConfigurationError("GCP project_id is not configured")
        return self._project_id

    def is_configured(self) -> bool:
        has_project = bool(self._project_id or os.environ.get("GOOGLE_CLOUD_PROJECT"))
        has_credentials = bool(
            self._credentials is not None
            or self.config.credentials_path
            or os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        )
        return has_project and has_credentials

    def validate_credentials(self) -> bool:
        try:
            self._credentials = self._credentials or self._load_credentials()
        except AuthenticationError as e:
            self.logger.error(f"GCP credential validation failed: {e}")
            return False
        return True

    def get_accounts(self) -> List[Account]:
        return [Account(account_id=self.project_id, name=self.project_id)]

    def get_regions(self) -> List[str]:
        client = compute_v1.RegionsClient(credentials=self.credentials)
        try:
            return sorted(region.name for region in client.list(project=self.project_id))
        except GoogleAPICallError as e:
            raise TransportError("list regions failed", e)

    def get_default_region(self) -> str:
        return self.config.default_region

    def get_supported_services(self) -> List[ServiceType]:
        return [ServiceType.COMPUTE]

    def get_service_client(self, service: ServiceType, region: Optional[str] = None) -> ComputeEngineClient:
        if service != ServiceType.COMPUTE:
            raise ValidationError(f"GCP does not support commitments for {service.value}")
        region = region or self.get_default_region()
        if region not in self.service_clients:
            client = ComputeEngineClient(self.project_id, region, credentials=self.credentials)
            client.pricing = BillingCatalogPricing(client.shape, credentials=self.credentials)
            self.service_clients[region] = client
        return self.service_clients[region]
