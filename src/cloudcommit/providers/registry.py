"""Provider registry; adapters are imported only when created"""

import logging
from typing import Callable, Dict, List, Optional

from ..core.base.provider import CloudProvider
from ..core.config import Settings, get_settings
from ..core.exceptions import ConfigurationError

ProviderFactory = Callable[[Settings], CloudProvider]

logger = logging.getLogger(__name__)


def _create_aws(settings: Settings) -> CloudProvider:
    from .aws import AWSProvider
    return AWSProvider(settings.aws, settings.retry)


def _create_azure(settings: Settings) -> CloudProvider:
    from .azure import AzureProvider
    return AzureProvider(settings.azure, settings.retry)


def _create_gcp(settings: Settings) -> CloudProvider:
    from .gcp import GCPProvider
    return GCPProvider(settings.gcp)


class ProviderRegistry:
    """Named provider factories"""

    def __init__(self):
        self.factories: Dict[str, ProviderFactory] = {}

    def register(self, name: str, factory: ProviderFactory):
        """Register a provider factory"""
        self.factories[name.lower()] = factory
        logger.debug(f"Registered provider: {name}")

    def unregister(self, name: str):
        self.factories.pop(name.lower(), None)

    def create(self, name: str, settings: Optional[Settings] = None) -> CloudProvider:
        """Instantiate a provider.

        Raises:
            ConfigurationError: if no provider is registered under the name,
                or its SDK extra is not installed
        """
        factory = self.factories.get(name.lower())
        if factory is None:
            raise ConfigurationError(
                f"Unknown provider: {name} (available: {', '.join(self.list_providers())})"
            )
        try:
            return factory(settings or get_settings())
        except ImportError as e:
            raise ConfigurationError(f"Provider {name} needs its SDK installed: pip install cloudcommit[{name}] ({e})")

    def list_providers(self) -> List[str]:
        return sorted(self.factories)


def default_registry() -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.register("aws", _create_aws)
    registry.register("azure", _create_azure)
    registry.register("gcp", _create_gcp)
    return registry


registry = default_registry()
