import threading
from typing import List, Optional

from ...core.base.models import (
    CommitmentPage,
    CommitmentRecord,
    ComputeDetails,
    Offering,
    OfferingPage,
    PurchaseRecord,
    Recommendation,
    ServiceType,
)
from .base import AWSServiceClient, duration_for, offering_type_for, parse_charges

SCOPES = {
    "region": "Region",
    "availability-zone": "Availability Zone",
    "availability zone": "Availability Zone",
}

TENANCIES = {
    "shared": "default",
    "default": "default",
    "dedicated": "dedicated",
    "host": "host",
}


class EC2Client(AWSServiceClient):
    """Standard reserved EC2 instances"""

    service_type = ServiceType.COMPUTE
    service_label = "EC2"

    def _filters(self, recommendation: Recommendation) -> List[dict]:
        details = recommendation.details
        if not isinstance(details, ComputeDetails):
            details = ComputeDetails()

        platform = details.platform or "Linux/UNIX"
        tenancy = TENANCIES.get(details.tenancy.lower(), details.tenancy) if details.tenancy else "default"
        scope = SCOPES.get(details.scope.lower(), details.scope) if details.scope else "Region"

        return [
            {"Name": "instance-type", "Values": [recommendation.resource_type]},
            {"Name": "product-description", "Values": [platform]},
            {"Name": "instance-tenancy", "Values": [tenancy]},
            {"Name": "scope", "Values": [scope]},
            {"Name": "duration", "Values": [str(duration_for(recommendation.term))]},
            {"Name": "offering-class", "Values": ["standard"]},
        ]

    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        params = {
            "Filters": self._filters(recommendation),
            "OfferingType": offering_type_for(recommendation.payment_option),
            "IncludeMarketplace": False,
            "MaxResults": 100,
        }
        if page_token:
            params["NextToken"] = page_token

        response = self.call("describe_reserved_instances_offerings", **params)
        offerings = [
            Offering(
                offering_id=item["ReservedInstancesOfferingId"],
                resource_type=item.get("InstanceType", ""),
                duration_seconds=item.get("Duration"),
                offering_type=item.get("OfferingType", ""),
                fixed_price=item.get("FixedPrice"),
                usage_price=item.get("UsagePrice", 0.0),
                currency=item.get("CurrencyCode") or "USD",
                recurring_charges=parse_charges(item.get("RecurringCharges")),
                payment_option=item.get("OfferingType"),
                attributes={
                    "product_description": item.get("ProductDescription", ""),
                    "scope": item.get("Scope", ""),
                    "offering_class": item.get("OfferingClass", ""),
                },
            )
            for item in response.get("ReservedInstancesOfferings", [])
        ]
        return OfferingPage(offerings, response.get("NextToken"))

    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        response = self.call(
            "purchase_reserved_instances_offering",
            ReservedInstancesOfferingId=offering.offering_id,
            InstanceCount=quantity,
        )
        reservation_id = response.get("ReservedInstancesId")
        if not reservation_id:
            return None
        return PurchaseRecord(
            commitment_id=reservation_id,
            offering_id=offering.offering_id,
            raw=response,
        )

    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        # DescribeReservedInstances is not paginated; one call returns everything
        response = self.call(
            "describe_reserved_instances",
            Filters=[{"Name": "state", "Values": ["active", "payment-pending"]}],
        )
        records = [
            CommitmentRecord(
                commitment_id=item.get("ReservedInstancesId", ""),
                resource_type=item.get("InstanceType", ""),
                count=item.get("InstanceCount", 0),
                state=item.get("State", ""),
                start_date=item.get("Start"),
                duration_seconds=item.get("Duration"),
                engine=item.get("ProductDescription", ""),
                payment_option=item.get("OfferingType", ""),
                cost=item.get("FixedPrice") or 0.0,
            )
            for item in response.get("ReservedInstances", [])
        ]
        return CommitmentPage(records)

    def list_valid_resource_types(self) -> List[str]:
        """Instance types offered in this client's region"""
        instance_types = set()
        params = {"LocationType": "region", "MaxResults": 1000}
        while True:
            response = self.call("describe_instance_type_offerings", **params)
            for item in response.get("InstanceTypeOfferings", []):
                instance_types.add(item["InstanceType"])
            next_token = response.get("NextToken")
            if not next_token:
                break
            params["NextToken"] = next_token
        return sorted(instance_types)
