from .registry import ProviderRegistry, default_registry, registry

__all__ = ['ProviderRegistry', 'default_registry', 'registry']
