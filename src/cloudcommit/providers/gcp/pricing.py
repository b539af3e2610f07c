"""Compute Engine rates from the Cloud Billing catalog"""

import logging
from typing import Any, Callable, Optional, Tuple

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import billing_v1

from ...core.base.models import PriceQuote, Term
from ...core.exceptions import NotFoundError, TransportError
from ...core.pricing import PricingLookup

COMPUTE_ENGINE_SERVICE = "services/6F81-5844-456A"

# Typical committed-use discount when the catalog has no commitment SKU
DEFAULT_COMMITMENT_RATIOS = {
    Term.ONE_YEAR: 0.63,
    Term.THREE_YEAR: 0.45,
}

USAGE_TYPES = {
    Term.ONE_YEAR: "Commit1Yr",
    Term.THREE_YEAR: "Commit3Yr",
}

logger = logging.getLogger(__name__)


def machine_family(machine_type: str) -> str:
    return machine_type.split("-", 1)[0].upper()


def unit_price(sku: Any) -> Tuple[float, str]:
    """Hourly price and currency of the first tier of a SKU's current pricing"""
    if not sku.pricing_info:
        return 0.0, "USD"
    rates = sku.pricing_info[0].pricing_expression.tiered_rates
    if not rates:
        return 0.0, "USD"
    money = rates[0].unit_price
    return money.units + money.nanos / 1e9, money.currency_code or "USD"


class BillingCatalogPricing(PricingLookup):
    """Price a machine type as vCPU and memory SKUs of its family.

    ``shape`` maps a machine type to ``(vcpus, memory_gb)``.
    """

    def __init__(self, shape: Callable[[str], Tuple[int, float]],
                 catalog: Optional[billing_v1.CloudCatalogClient] = None, credentials: Any = None):
        self.shape = shape
        self._catalog = catalog
        self._credentials = credentials

    @property
    def catalog(self) -> billing_v1.CloudCatalogClient:
        if self._catalog is None:
            self._catalog = billing_v1.CloudCatalogClient(credentials=self._credentials)
        return self._catalog

    def _skus(self):
        try:
            return list(self.catalog.list_skus(parent=COMPUTE_ENGINE_SERVICE))
        except GoogleAPICallError as e:
            raise TransportError("list_skus failed", e)

    def get_price(self, resource_type: str, region: str, term: Term) -> PriceQuote:
        family = machine_family(resource_type)
        vcpus, memory_gb = self.shape(resource_type)
        commit_usage = USAGE_TYPES[term]

        rates = {}
        currency = "USD"
        for sku in self._skus():
            if region not in sku.service_regions:
                continue
            description = sku.description.upper()
            if f"{family} " not in description:
                continue
            group = sku.category.resource_group.upper()
            usage = sku.category.usage_type
            if usage not in ("OnDemand", commit_usage):
                continue
            if group == "RAM" or "RAM" in description:
                kind = "ram"
            elif group == "CPU" or "CORE" in description or "CPU" in description:
                kind = "cpu"
            else:
                continue
            price, currency = unit_price(sku)
            rates.setdefault((usage, kind), price)

        on_demand = rates.get(("OnDemand", "cpu"), 0.0) * vcpus + rates.get(("OnDemand", "ram"), 0.0) * memory_gb
        if not on_demand:
            raise NotFoundError(f"no on-demand pricing found for {resource_type} in {region}",
                                resource_type=resource_type)

        reserved = rates.get((commit_usage, "cpu"), 0.0) * vcpus + rates.get((commit_usage, "ram"), 0.0) * memory_gb
        if not reserved:
            logger.debug(f"No commitment SKUs for {family} in {region}, using the typical discount")
            reserved = on_demand * DEFAULT_COMMITMENT_RATIOS[term]

        return PriceQuote(on_demand_rate=on_demand, reserved_rate=reserved, currency=currency)
