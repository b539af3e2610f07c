"""Azure Retail Prices API client"""

import logging
from typing import Any, Dict, Iterator, List, Optional

import httpx

from ...core.base.models import PriceQuote, Term
from ...core.exceptions import NotFoundError, TransportError
from ...core.pricing import HOURS_PER_YEAR, PricingLookup

logger = logging.getLogger(__name__)

RETAIL_PRICES_URL = "https://prices.azure.com/api/retail/prices"
RETAIL_PRICES_API_VERSION = "2023-01-01-preview"

# Applied to on-demand pricing when no reservation price is published
DEFAULT_RESERVATION_RATIO = 0.62

RESERVATION_TERMS = {
    Term.ONE_YEAR: "1 Year",
    Term.THREE_YEAR: "3 Years",
}


class RetailPricesClient(PricingLookup):
    """Unauthenticated price lookups for one Azure service name.

    Reservation items carry the total price for the whole term; consumption
    items carry an hourly unit price.
    """

    def __init__(self, service_name: str, http: Optional[httpx.Client] = None, timeout: float = 30.0):
        self.service_name = service_name
        self.http = http or httpx.Client(timeout=timeout)

    def build_filter(self, region: str, sku: Optional[str] = None,
                     price_type: Optional[str] = None, term: Optional[Term] = None) -> str:
        clauses = [f"serviceName eq '{self.service_name}'", f"armRegionName eq '{region}'"]
        if sku:
            clauses.append(f"armSkuName eq '{sku}'")
        if price_type:
            clauses.append(f"priceType eq '{price_type}'")
        if term is not None:
            clauses.append(f"reservationTerm eq '{RESERVATION_TERMS[term]}'")
        return " and ".join(clauses)

    def fetch_page(self, odata_filter: Optional[str] = None,
                   page_url: Optional[str] = None) -> Dict[str, Any]:
        """Fetch one page; ``page_url`` is a NextPageLink from a previous page"""
        if page_url:
            request = {"url": page_url}
        else:
            request = {
                "url": RETAIL_PRICES_URL,
                "params": {"$filter": odata_filter, "api-version": RETAIL_PRICES_API_VERSION},
            }
        try:
            response = self.http.get(**request)
        except httpx.HTTPError as e:
            raise TransportError("Azure retail prices request failed", e)
        if response.status_code != 200:
            raise TransportError(f"Azure retail prices returned status {response.status_code}: {response.text}")
        return response.json()

    def iter_items(self, odata_filter: str) -> Iterator[Dict[str, Any]]:
        page = self.fetch_page(odata_filter)
        while True:
            for item in page.get("Items", []):
                yield item
            next_link = page.get("NextPageLink")
            if not next_link:
                return
            page = self.fetch_page(page_url=next_link)

    def list_items(self, region: str, sku: Optional[str] = None,
                   price_type: Optional[str] = None, term: Optional[Term] = None) -> List[Dict[str, Any]]:
        return list(self.iter_items(self.build_filter(region, sku, price_type, term)))

    def get_price(self, resource_type: str, region: str, term: Term) -> PriceQuote:
        items = self.list_items(region, sku=resource_type)
        if not items:
            raise NotFoundError(
                f"no pricing data found for {resource_type} in {region}", resource_type=resource_type,
            )

        on_demand_rate = 0.0
        reservation_total = 0.0
        currency = "USD"
        for item in items:
            currency = item.get("currencyCode") or currency
            if item.get("type") == "Reservation":
                if item.get("reservationTerm") == RESERVATION_TERMS[term]:
                    reservation_total = float(item.get("retailPrice", 0.0))
            elif item.get("type") == "Consumption" and not on_demand_rate:
                on_demand_rate = float(item.get("unitPrice", 0.0))

        hours = HOURS_PER_YEAR * term.years
        if reservation_total:
            reserved_rate = reservation_total / hours
        else:
            logger.debug(f"No {term.value} reservation price for {resource_type}, estimating from on-demand")
            reserved_rate = on_demand_rate * DEFAULT_RESERVATION_RATIO

        if not on_demand_rate and not reserved_rate:
            raise NotFoundError(f"no usable price for {resource_type} in {region}", resource_type=resource_type)

        return PriceQuote(on_demand_rate=on_demand_rate, reserved_rate=reserved_rate, currency=currency)
