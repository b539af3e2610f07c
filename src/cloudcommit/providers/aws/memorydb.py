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
from .base import AWSServiceClient, duration_for, offering_type_for, parse_charges, reservation_id


class MemoryDBClient(AWSServiceClient):
    """Reserved MemoryDB nodes.

    MemoryDB shares the cache service type with ElastiCache; recommendations
    reach this client when their cache details name the ``memorydb`` engine.
    """

    service_type = ServiceType.CACHE
    service_label = "MemoryDB"
    purchase_unit = "nodes"
    valid_resource_types = (
        "db.t4g.small", "db.t4g.medium",
        "db.r6g.large", "db.r6g.xlarge", "db.r6g.2xlarge", "db.r6g.4xlarge",
        "db.r6gd.xlarge", "db.r6gd.2xlarge", "db.r6gd.4xlarge",
        "db.r7g.large", "db.r7g.xlarge", "db.r7g.2xlarge",
    )

    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        params = {
            "NodeType": recommendation.resource_type,
            "Duration": str(duration_for(recommendation.term)),
            "OfferingType": offering_type_for(recommendation.payment_option),
            "MaxResults": 100,
        }
        if page_token:
            params["NextToken"] = page_token

        response = self.call("describe_reserved_nodes_offerings", **params)
        offerings = [
            Offering(
                offering_id=item["ReservedNodesOfferingId"],
                resource_type=item.get("NodeType", ""),
                duration_seconds=item.get("Duration"),
                offering_type=item.get("OfferingType", ""),
                fixed_price=item.get("FixedPrice"),
                recurring_charges=parse_charges(item.get("RecurringCharges")),
                payment_option=item.get("OfferingType"),
            )
            for item in response.get("ReservedNodesOfferings", [])
        ]
        return OfferingPage(offerings, response.get("NextToken"))

    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        response = self.call(
            "purchase_reserved_nodes_offering",
            ReservedNodesOfferingId=offering.offering_id,
            ReservationId=reservation_id("memorydb", recommendation.resource_type),
            NodeCount=quantity,
            Tags=[
                {"Key": "Purpose", "Value": "Reserved Node Purchase"},
                {"Key": "NodeType", "Value": recommendation.resource_type},
                {"Key": "Tool", "Value": "cloudcommit"},
            ],
        )
        reserved = response.get("ReservedNode")
        if not reserved:
            return None
        return PurchaseRecord(
            commitment_id=reserved.get("ReservationId", ""),
            offering_id=reserved.get("ReservedNodesOfferingId", ""),
            fixed_price=reserved.get("FixedPrice"),
            recurring_charges=parse_charges(reserved.get("RecurringCharges")),
            duration_seconds=reserved.get("Duration"),
            state=reserved.get("State", ""),
            raw=reserved,
        )

    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        params = {"MaxResults": 100}
        if page_token:
            params["NextToken"] = page_token
        response = self.call("describe_reserved_nodes", **params)
        records = [
            CommitmentRecord(
                commitment_id=item.get("ReservationId", ""),
                resource_type=item.get("NodeType", ""),
                count=item.get("NodeCount", 0),
                state=item.get("State", ""),
                start_date=item.get("StartTime"),
                duration_seconds=item.get("Duration"),
                engine="memorydb",
                payment_option=item.get("OfferingType", ""),
                cost=item.get("FixedPrice") or 0.0,
            )
            for item in response.get("ReservedNodes", [])
        ]
        return CommitmentPage(records, response.get("NextToken"))
