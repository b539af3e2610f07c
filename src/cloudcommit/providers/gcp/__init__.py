from .client import GCPProvider
from .compute import ComputeEngineClient
from .pricing import BillingCatalogPricing

__all__ = ["BillingCatalogPricing", "ComputeEngineClient", "GCPProvider"]
