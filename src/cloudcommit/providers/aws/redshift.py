import threading
from typing import Optional

from ...core.base.models import (
    CommitmentPage,
    CommitmentRecord,
    Offering,
    OfferingPage,
    PurchaseRecord,
    Recommendation,
    ServiceType,
)
from ...core.matching import DEFAULT_RESOLVABLE_TYPES
from .base import AWSServiceClient, parse_charges


class RedshiftClient(AWSServiceClient):
    """Reserved Redshift nodes.

    Redshift offerings are typed Regular or Upgradable rather than by payment
    option, and either satisfies any requested payment option.
    """

    service_type = ServiceType.DATA_WAREHOUSE
    service_label = "Redshift"
    purchase_unit = "nodes"
    valid_resource_types = (
        "dc2.large", "dc2.8xlarge",
        "ra3.xlplus", "ra3.4xlarge", "ra3.16xlarge",
    )

    def resolvable_offering_types(self, recommendation):
        return DEFAULT_RESOLVABLE_TYPES

    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        params = {"MaxRecords": 100}
        if page_token:
            params["Marker"] = page_token

        response = self.call("describe_reserved_node_offerings", **params)
        offerings = [
            Offering(
                offering_id=item["ReservedNodeOfferingId"],
                resource_type=item.get("NodeType", ""),
                duration_seconds=item.get("Duration"),
                offering_type=item.get("ReservedNodeOfferingType", ""),
                fixed_price=item.get("FixedPrice"),
                usage_price=item.get("UsagePrice", 0.0),
                currency=item.get("CurrencyCode") or "USD",
                recurring_charges=parse_charges(item.get("RecurringCharges")),
                payment_option=item.get("OfferingType"),
            )
            for item in response.get("ReservedNodeOfferings", [])
        ]
        return OfferingPage(offerings, response.get("Marker"))

    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        response = self.call(
            "purchase_reserved_node_offering",
            ReservedNodeOfferingId=offering.offering_id,
            NodeCount=quantity,
        )
        reserved = response.get("ReservedNode")
        if not reserved:
            return None
        return PurchaseRecord(
            commitment_id=reserved.get("ReservedNodeId", ""),
            offering_id=reserved.get("ReservedNodeOfferingId", ""),
            fixed_price=reserved.get("FixedPrice"),
            recurring_charges=parse_charges(reserved.get("RecurringCharges")),
            duration_seconds=reserved.get("Duration"),
            currency=reserved.get("CurrencyCode", ""),
            state=reserved.get("State", ""),
            raw=reserved,
        )

    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        params = {"MaxRecords": 100}
        if page_token:
            params["Marker"] = page_token
        response = self.call("describe_reserved_nodes", **params)
        records = [
            CommitmentRecord(
                commitment_id=item.get("ReservedNodeId", ""),
                resource_type=item.get("NodeType", ""),
                count=item.get("NodeCount", 0),
                state=item.get("State", ""),
                start_date=item.get("StartTime"),
                duration_seconds=item.get("Duration"),
                payment_option=item.get("OfferingType", ""),
                cost=item.get("FixedPrice") or 0.0,
            )
            for item in response.get("ReservedNodes", [])
        ]
        return CommitmentPage(records, response.get("Marker"))
