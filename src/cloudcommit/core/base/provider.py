from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .models import Account, ProviderType, Recommendation, RecommendationParams, ServiceType
from .service import BaseServiceClient


class CloudProvider(ABC):
    """Abstract base class for cloud provider implementations"""

    name: str = ""
    display_name: str = ""

    @abstractmethod
    def is_configured(self) -> bool:
        """Check whether credentials for the provider are available"""
        pass

    @abstractmethod
    def validate_credentials(self) -> bool:
        """Validate the provided credentials"""
        pass

    @abstractmethod
    def get_accounts(self) -> List[Account]:
        """Get accounts, subscriptions or projects reachable with the credentials"""
        pass

    @abstractmethod
    def get_regions(self) -> List[str]:
        """Get list of available regions"""
        pass

    @abstractmethod
    def get_default_region(self) -> str:
        """Get the region used when none is given"""
        pass

    @abstractmethod
    def get_supported_services(self) -> List[ServiceType]:
        """Get services commitments can be purchased for"""
        pass

    @abstractmethod
    def get_service_client(self, service: ServiceType, region: Optional[str] = None) -> BaseServiceClient:
        """Get the commitment client for a service in a region"""
        pass

    def client_for(self, recommendation: Recommendation) -> BaseServiceClient:
        """Get the client that can purchase a recommendation"""
        return self.get_service_client(recommendation.service, recommendation.region or None)

    def get_recommendations(self, params: RecommendationParams) -> List[Recommendation]:
        """Get purchase recommendations from the provider's advisor"""
        return self.get_service_client(params.service, params.region).get_recommendations(params)

    def get_provider_info(self) -> Dict[str, Any]:
        """Get provider information"""
        return {
            "provider": self.name,
            "display_name": self.display_name,
            "configured": self.is_configured(),
            "default_region": self.get_default_region(),
            "services": [s.value for s in self.get_supported_services()],
        }
