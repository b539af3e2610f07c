import threading
from typing import Optional

from ...core.base.models import (
    CacheDetails,
    CommitmentPage,
    CommitmentRecord,
    Offering,
    OfferingPage,
    PurchaseRecord,
    Recommendation,
    ServiceType,
)
from .base import AWSServiceClient, duration_for, offering_type_for, parse_charges, reservation_id


class ElastiCacheClient(AWSServiceClient):
    """Reserved cache nodes"""

    service_type = ServiceType.CACHE
    service_label = "ElastiCache"
    purchase_unit = "nodes"
    valid_resource_types = (
        "cache.t3.micro", "cache.t3.small", "cache.t3.medium",
        "cache.t4g.micro", "cache.t4g.small", "cache.t4g.medium",
        "cache.m5.large", "cache.m5.xlarge", "cache.m5.2xlarge",
        "cache.m6g.large", "cache.m6g.xlarge", "cache.m6g.2xlarge",
        "cache.r5.large", "cache.r5.xlarge", "cache.r5.2xlarge",
        "cache.r6g.large", "cache.r6g.xlarge", "cache.r6g.2xlarge",
    )

    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        params = {
            "CacheNodeType": recommendation.resource_type,
            "Duration": str(duration_for(recommendation.term)),
            "OfferingType": offering_type_for(recommendation.payment_option),
            "MaxRecords": 100,
        }
        details = recommendation.details
        if isinstance(details, CacheDetails) and details.engine:
            params["ProductDescription"] = details.engine
        if page_token:
            params["Marker"] = page_token

        response = self.call("describe_reserved_cache_nodes_offerings", **params)
        offerings = [
            Offering(
                offering_id=item["ReservedCacheNodesOfferingId"],
                resource_type=item.get("CacheNodeType", ""),
                duration_seconds=item.get("Duration"),
                offering_type=item.get("OfferingType", ""),
                fixed_price=item.get("FixedPrice"),
                usage_price=item.get("UsagePrice", 0.0),
                recurring_charges=parse_charges(item.get("RecurringCharges")),
                payment_option=item.get("OfferingType"),
                attributes={"product_description": item.get("ProductDescription", "")},
            )
            for item in response.get("ReservedCacheNodesOfferings", [])
        ]
        return OfferingPage(offerings, response.get("Marker"))

    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        response = self.call(
            "purchase_reserved_cache_nodes_offering",
            ReservedCacheNodesOfferingId=offering.offering_id,
            ReservedCacheNodeId=reservation_id("elasticache", recommendation.resource_type),
            CacheNodeCount=quantity,
            Tags=[
                {"Key": "Purpose", "Value": "Reserved Cache Node Purchase"},
                {"Key": "NodeType", "Value": recommendation.resource_type},
                {"Key": "Tool", "Value": "cloudcommit"},
            ],
        )
        reserved = response.get("ReservedCacheNode")
        if not reserved:
            return None
        return PurchaseRecord(
            commitment_id=reserved.get("ReservedCacheNodeId", ""),
            offering_id=reserved.get("ReservedCacheNodesOfferingId", ""),
            fixed_price=reserved.get("FixedPrice"),
            recurring_charges=parse_charges(reserved.get("RecurringCharges")),
            duration_seconds=reserved.get("Duration"),
            state=reserved.get("State", ""),
            raw=reserved,
        )

    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        params = {"MaxRecords": 100}
        if page_token:
            params["Marker"] = page_token
        response = self.call("describe_reserved_cache_nodes", **params)
        records = [
            CommitmentRecord(
                commitment_id=item.get("ReservedCacheNodeId", ""),
                resource_type=item.get("CacheNodeType", ""),
                count=item.get("CacheNodeCount", 0),
                state=item.get("State", ""),
                start_date=item.get("StartTime"),
                duration_seconds=item.get("Duration"),
                engine=item.get("ProductDescription", ""),
                payment_option=item.get("OfferingType", ""),
                cost=item.get("FixedPrice") or 0.0,
            )
            for item in response.get("ReservedCacheNodes", [])
        ]
        return CommitmentPage(records, response.get("Marker"))
