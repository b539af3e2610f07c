"""Tests for the provider registry"""

import pytest

from cloudcommit.core.config import Settings
from cloudcommit.core.exceptions import ConfigurationError
from cloudcommit.providers.aws import AWSProvider
from cloudcommit.providers.registry import ProviderRegistry, default_registry


class TestProviderRegistry:
    """Test ProviderRegistry class"""

    def test_default_providers(self):
        assert default_registry().list_providers() == ["aws", "azure", "gcp"]

    def test_create_aws(self):
        settings = Settings(aws={"profile": "prod", "default_region": "eu-west-1"})

        provider = default_registry().create("AWS", settings)

        assert isinstance(provider, AWSProvider)
        assert provider.config.profile == "prod"
        assert provider.get_default_region() == "eu-west-1"

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unknown provider: oracle"):
            default_registry().create("oracle", Settings())

    def test_register(self):
        registry = ProviderRegistry()
        sentinel = object()
        registry.register("Custom", lambda settings: sentinel)

        assert registry.list_providers() == ["custom"]
        assert registry.create("custom", Settings()) is sentinel

        registry.unregister("CUSTOM")
        assert registry.list_providers() == []

    def test_missing_sdk(self):
        def factory(settings):
            raise ImportError("No module named 'azure.identity'")

        registry = ProviderRegistry()
        registry.register("azure", factory)

        with pytest.raises(ConfigurationError, match=r"pip install cloudcommit\[azure\]"):
            registry.create("azure", Settings())

    def test_uses_global_settings(self, monkeypatch):
        monkeypatch.setenv("CLOUDCOMMIT_AWS__DEFAULT_REGION", "ap-south-1")
        provider = default_registry().create("aws")
        assert provider.get_default_region() == "ap-south-1"
