"""Azure reservation clients over the Microsoft.Capacity REST API"""

import threading
import uuid
from typing import Any, Dict, Optional

import httpx

from ...core.base.models import (
    CommitmentPage,
    CommitmentRecord,
    CommitmentState,
    Offering,
    OfferingPage,
    PaymentOption,
    ProviderType,
    PurchaseRecord,
    Recommendation,
    ServiceType,
)
from ...core.base.service import BaseServiceClient
from ...core.exceptions import TransportError, ValidationError
from ...core.inventory import parse_timestamp
from ...core.matching import ONE_YEAR_SECONDS, THREE_YEAR_SECONDS
from ...core.ratelimit import RetryPolicy
from .pricing import RetailPricesClient
from .rest import MANAGEMENT_URL, AzureRestClient, describe_error

CAPACITY_API_VERSION = "2022-11-01"
ACCEPTED_STATUSES = (200, 201, 202)

TERM_DURATIONS = {
    "1 Year": ONE_YEAR_SECONDS,
    "3 Years": THREE_YEAR_SECONDS,
    "5 Years": 5 * ONE_YEAR_SECONDS,
    "P1Y": ONE_YEAR_SECONDS,
    "P3Y": THREE_YEAR_SECONDS,
    "P5Y": 5 * ONE_YEAR_SECONDS,
}

BILLING_PLANS = {
    PaymentOption.ALL_UPFRONT: "Upfront",
    PaymentOption.NO_UPFRONT: "Monthly",
}


def is_throttled(error: Exception) -> bool:
    return isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 429


def order_id_from(body: Dict[str, Any]) -> str:
    if body.get("name"):
        return body["name"]
    return (body.get("id") or "").rstrip("/").rsplit("/", 1)[-1]


class AzureReservationClient(BaseServiceClient):
    """Base class for Azure reservations of one reserved resource type.

    The catalog is the Retail Prices API filtered to reservation items; a
    purchase is a reservation order PUT; the inventory is the tenant-wide
    reservation listing narrowed to this resource type.
    """

    provider = ProviderType.AZURE
    best_effort_listing = True
    state_map = {
        "succeeded": CommitmentState.ACTIVE,
        "pendingbilling": CommitmentState.PAYMENT_PENDING,
        "pendingresourcehold": CommitmentState.PAYMENT_PENDING,
        "creating": CommitmentState.PAYMENT_PENDING,
        "expired": CommitmentState.EXPIRED,
        "cancelled": CommitmentState.EXPIRED,
        "failed": CommitmentState.OTHER,
    }

    retail_service_name: str = ""
    reserved_resource_type: str = ""

    def __init__(self, rest: AzureRestClient, subscription_id: str, region: str,
                 prices: Optional[RetailPricesClient] = None,
                 retry_policy: Optional[RetryPolicy] = None):
        self.rest = rest
        self.subscription_id = subscription_id
        self.prices = prices or RetailPricesClient(self.retail_service_name, http=rest.http)
        self.retry_policy = retry_policy or RetryPolicy()
        super().__init__(region, account=subscription_id, pricing=self.prices)

    def resolvable_offering_types(self, recommendation):
        return ("Reservation",)

    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        if page_token:
            page = self.prices.fetch_page(page_url=page_token)
        else:
            odata_filter = self.prices.build_filter(
                recommendation.region or self.region,
                sku=recommendation.resource_type,
                price_type="Reservation",
                term=recommendation.term,
            )
            page = self.prices.fetch_page(odata_filter)

        offerings = [
            Offering(
                offering_id=item.get("skuId") or item.get("meterId", ""),
                resource_type=item.get("armSkuName", ""),
                duration_seconds=TERM_DURATIONS.get(item.get("reservationTerm", "")),
                offering_type=item.get("type", ""),
                fixed_price=item.get("retailPrice"),
                currency=item.get("currencyCode") or "USD",
                attributes={
                    "product_name": item.get("productName", ""),
                    "meter_name": item.get("meterName", ""),
                    "region": item.get("armRegionName", ""),
                },
            )
            for item in page.get("Items", [])
        ]
        return OfferingPage(offerings, page.get("NextPageLink"))

    def order_body(self, offering: Offering, quantity: int, recommendation: Recommendation) -> Dict[str, Any]:
        if recommendation.payment_option not in BILLING_PLANS:
            raise ValidationError(
                f"Azure reservations do not support {recommendation.payment_option.value} payment"
            )
        return {
            "sku": {"name": offering.resource_type},
            "location": recommendation.region or self.region,
            "properties": {
                "reservedResourceType": self.reserved_resource_type,
                "billingScopeId": f"/subscriptions/{self.subscription_id}",
                "term": f"P{recommendation.term.years}Y",
                "billingPlan": BILLING_PLANS[recommendation.payment_option],
                "quantity": quantity,
                "displayName": f"{self.service_label} Reservation - {offering.resource_type}",
                "appliedScopeType": "Shared",
                "renew": False,
            },
        }

    def _put_order(self, url: str, body: Dict[str, Any], token: str) -> httpx.Response:
        response = self.rest.request(
            "PUT", url, token=token, params={"api-version": CAPACITY_API_VERSION}, json=body,
        )
        if response.status_code == 429:
            response.raise_for_status()
        return response

    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        body = self.order_body(offering, quantity, recommendation)
        order_id = str(uuid.uuid4())
        url = f"{MANAGEMENT_URL}/providers/Microsoft.Capacity/reservationOrders/{order_id}"

        token = self.rest.token()
        try:
            response = self.retry_policy.call(
                self._put_order, url, body, token, is_retryable=is_throttled, cancel_event=cancel_event,
            )
        except httpx.HTTPError as e:
            raise TransportError("reservation order failed", e)

        if response.status_code not in ACCEPTED_STATUSES:
            raise TransportError(f"reservation purchase failed with {describe_error(response)}")

        try:
            order = response.json() if response.content else {}
        except ValueError:
            order = {}
        commitment_id = order_id_from(order)
        if not commitment_id:
            return None

        properties = order.get("properties", {})
        return PurchaseRecord(
            commitment_id=commitment_id,
            offering_id=offering.offering_id,
            duration_seconds=TERM_DURATIONS.get(properties.get("term", "")),
            currency=offering.currency,
            state=properties.get("provisioningState", ""),
            raw=order,
        )

    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        if page_token:
            body = self.rest.get_json(page_token)
        else:
            body = self.rest.get_json(
                f"{MANAGEMENT_URL}/providers/Microsoft.Capacity/reservations",
                params={"api-version": CAPACITY_API_VERSION},
            )

        records = []
        for item in body.get("value", []):
            properties = item.get("properties", {})
            if properties.get("reservedResourceType", "").lower() != self.reserved_resource_type.lower():
                continue
            records.append(CommitmentRecord(
                commitment_id=item.get("name") or item.get("id", ""),
                resource_type=item.get("sku", {}).get("name", ""),
                count=int(properties.get("quantity", 0)),
                state=properties.get("provisioningState", ""),
                start_date=parse_timestamp(properties.get("effectiveDateTime") or properties.get("benefitStartTime")),
                duration_seconds=TERM_DURATIONS.get(properties.get("term", "")),
                region=item.get("location", ""),
                payment_option="all-upfront" if properties.get("billingPlan") == "Upfront" else "no-upfront",
            ))
        return CommitmentPage(records, body.get("nextLink"))


class AzureComputeClient(AzureReservationClient):
    """Virtual machine reservations"""

    service_type = ServiceType.COMPUTE
    service_label = "Azure VM"
    retail_service_name = "Virtual Machines"
    reserved_resource_type = "VirtualMachines"
    valid_resource_types = (
        "Standard_B2s", "Standard_B2ms", "Standard_B4ms",
        "Standard_D2s_v5", "Standard_D4s_v5", "Standard_D8s_v5", "Standard_D16s_v5",
        "Standard_E2s_v5", "Standard_E4s_v5", "Standard_E8s_v5", "Standard_E16s_v5",
        "Standard_F2s_v2", "Standard_F4s_v2", "Standard_F8s_v2",
    )


class AzureSQLClient(AzureReservationClient):
    """SQL Database vCore reservations"""

    service_type = ServiceType.RELATIONAL_DB
    service_label = "Azure SQL Database"
    retail_service_name = "SQL Database"
    reserved_resource_type = "SqlDatabases"
    valid_resource_types = (
        "SQLDB_GP_Compute_Gen5", "SQLDB_BC_Compute_Gen5", "SQLDB_HS_Compute_Gen5",
        "SQLMI_GP_Compute_Gen5", "SQLMI_BC_Compute_Gen5",
    )


class AzureRedisClient(AzureReservationClient):
    """Azure Cache for Redis reservations"""

    service_type = ServiceType.CACHE
    service_label = "Azure Cache for Redis"
    purchase_unit = "nodes"
    retail_service_name = "Redis Cache"
    reserved_resource_type = "RedisCache"
    valid_resource_types = (
        "Premium_P1", "Premium_P2", "Premium_P3", "Premium_P4", "Premium_P5",
        "Enterprise_E10", "Enterprise_E20", "Enterprise_E50", "Enterprise_E100",
    )


class AzureSearchClient(AzureReservationClient):
    """Azure AI Search reservations"""

    service_type = ServiceType.SEARCH
    service_label = "Azure AI Search"
    purchase_unit = "units"
    retail_service_name = "Azure Cognitive Search"
    reserved_resource_type = "SearchServices"
    valid_resource_types = ("Standard S1", "Standard S2", "Standard S3", "Storage Optimized L1", "Storage Optimized L2")


class AzureCosmosDBClient(AzureReservationClient):
    """Cosmos DB reserved throughput"""

    service_type = ServiceType.NOSQL
    service_label = "Azure Cosmos DB"
    purchase_unit = "units"
    retail_service_name = "Azure Cosmos DB"
    reserved_resource_type = "CosmosDb"
    valid_resource_types = ("Cosmos DB - 100 RU/s",)
