import threading
from typing import Optional

from ...core.base.models import (
    CommitmentPage,
    CommitmentRecord,
    Offering,
    OfferingPage,
    PaymentOption,
    PurchaseRecord,
    Recommendation,
    ServiceType,
)
from .base import AWSServiceClient, parse_charges, reservation_id

PAYMENT_OPTIONS = {
    PaymentOption.ALL_UPFRONT: "ALL_UPFRONT",
    PaymentOption.PARTIAL_UPFRONT: "PARTIAL_UPFRONT",
    PaymentOption.NO_UPFRONT: "NO_UPFRONT",
}


class OpenSearchClient(AWSServiceClient):
    """Reserved OpenSearch instances.

    The catalog cannot be narrowed server side, so every page is scanned and
    the payment option doubles as the offering's commercial structure.
    """

    service_type = ServiceType.SEARCH
    service_label = "OpenSearch"
    valid_resource_types = (
        "t3.small.search", "t3.medium.search",
        "m5.large.search", "m5.xlarge.search", "m5.2xlarge.search",
        "m6g.large.search", "m6g.xlarge.search", "m6g.2xlarge.search",
        "r5.large.search", "r5.xlarge.search", "r5.2xlarge.search",
        "r6g.large.search", "r6g.xlarge.search", "r6g.2xlarge.search",
        "c5.large.search", "c5.xlarge.search", "c6g.large.search",
    )

    def resolvable_offering_types(self, recommendation):
        return (PAYMENT_OPTIONS[recommendation.payment_option],)

    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        params = {"MaxResults": 100}
        if page_token:
            params["NextToken"] = page_token

        response = self.call("describe_reserved_instance_offerings", **params)
        offerings = [
            Offering(
                offering_id=item["ReservedInstanceOfferingId"],
                resource_type=item.get("InstanceType", ""),
                duration_seconds=item.get("Duration"),
                offering_type=item.get("PaymentOption", ""),
                fixed_price=item.get("FixedPrice"),
                usage_price=item.get("UsagePrice", 0.0),
                currency=item.get("CurrencyCode") or "USD",
                recurring_charges=parse_charges(item.get("RecurringCharges")),
                payment_option=item.get("PaymentOption"),
            )
            for item in response.get("ReservedInstanceOfferings", [])
        ]
        return OfferingPage(offerings, response.get("NextToken"))

    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        response = self.call(
            "purchase_reserved_instance_offering",
            ReservedInstanceOfferingId=offering.offering_id,
            ReservationName=reservation_id("opensearch", recommendation.resource_type),
            InstanceCount=quantity,
        )
        commitment_id = response.get("ReservedInstanceId")
        if not commitment_id:
            return None
        return PurchaseRecord(
            commitment_id=commitment_id,
            offering_id=offering.offering_id,
            raw=response,
        )

    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        params = {"MaxResults": 100}
        if page_token:
            params["NextToken"] = page_token
        response = self.call("describe_reserved_instances", **params)
        records = [
            CommitmentRecord(
                commitment_id=item.get("ReservedInstanceId", ""),
                resource_type=item.get("InstanceType", ""),
                count=item.get("InstanceCount", 0),
                state=item.get("State", ""),
                start_date=item.get("StartTime"),
                duration_seconds=item.get("Duration"),
                payment_option=item.get("PaymentOption", ""),
                cost=item.get("FixedPrice") or 0.0,
            )
            for item in response.get("ReservedInstances", [])
        ]
        return CommitmentPage(records, response.get("NextToken"))
