import threading
from typing import Optional

from ...core.base.models import (
    CommitmentPage,
    CommitmentRecord,
    CommitmentState,
    CommitmentType,
    Offering,
    OfferingPage,
    PaymentOption,
    PurchaseRecord,
    Recommendation,
    SavingsPlanDetails,
    ServiceType,
)
from ...core.exceptions import ValidationError
from ...core.inventory import parse_timestamp
from .base import AWSServiceClient, duration_for, offering_type_for

PLAN_TYPES = {
    "compute": "Compute",
    "ec2instance": "EC2Instance",
    "sagemaker": "SageMaker",
    "database": "Database",
}


def plan_type_for(name: str) -> str:
    key = name.replace("_", "").replace("-", "").lower()
    if key.endswith("sp"):
        key = key[:-2]
    if key not in PLAN_TYPES:
        raise ValidationError(f"Unsupported Savings Plan type: {name}")
    return PLAN_TYPES[key]


class SavingsPlansClient(AWSServiceClient):
    """Savings Plans; the plan type plays the role of the resource type"""

    service_type = ServiceType.SAVINGS_PLANS
    commitment_type = CommitmentType.SAVINGS_PLAN
    service_label = "Savings Plans"
    purchase_unit = "plans"
    requires_details = True
    valid_resource_types = tuple(PLAN_TYPES.values())
    state_map = {
        "queued": CommitmentState.PAYMENT_PENDING,
        "payment-pending": CommitmentState.PAYMENT_PENDING,
        "pending-return": CommitmentState.ACTIVE,
        "payment-failed": CommitmentState.OTHER,
    }

    def _plan_type(self, recommendation: Recommendation) -> str:
        details = recommendation.details
        if isinstance(details, SavingsPlanDetails) and details.plan_type:
            return plan_type_for(details.plan_type)
        return plan_type_for(recommendation.resource_type)

    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        params = {
            "planTypes": [self._plan_type(recommendation)],
            "durations": [duration_for(recommendation.term)],
            "paymentOptions": [offering_type_for(recommendation.payment_option)],
            "maxResults": 100,
        }
        if page_token:
            params["nextToken"] = page_token

        response = self.call("describe_savings_plans_offerings", **params)
        offerings = [
            Offering(
                offering_id=item["offeringId"],
                resource_type=item.get("planType", ""),
                duration_seconds=item.get("durationSeconds"),
                offering_type=item.get("paymentOption", ""),
                currency=item.get("currency") or "USD",
                payment_option=item.get("paymentOption"),
                attributes={"description": item.get("description", "")},
            )
            for item in response.get("searchResults", [])
        ]
        return OfferingPage(offerings, response.get("nextToken"))

    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        details = recommendation.details
        hourly = details.hourly_commitment if isinstance(details, SavingsPlanDetails) else 0.0
        response = self.call(
            "create_savings_plan",
            savingsPlanOfferingId=offering.offering_id,
            commitment=f"{hourly * quantity:.2f}",
            tags={"Tool": "cloudcommit"},
        )
        plan_id = response.get("savingsPlanId")
        if not plan_id:
            return None

        record = PurchaseRecord(commitment_id=plan_id, offering_id=offering.offering_id, raw=response)
        if recommendation.payment_option == PaymentOption.ALL_UPFRONT and offering.duration_seconds:
            record.fixed_price = hourly * quantity * offering.duration_seconds / 3600
        return record

    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        params = {
            "states": ["active", "queued", "payment-pending", "pending-return"],
            "maxResults": 100,
        }
        if page_token:
            params["nextToken"] = page_token
        response = self.call("describe_savings_plans", **params)
        records = [
            CommitmentRecord(
                commitment_id=item.get("savingsPlanId", ""),
                resource_type=item.get("savingsPlanType", ""),
                count=1,
                state=item.get("state", ""),
                start_date=parse_timestamp(item.get("start")),
                duration_seconds=item.get("termDurationInSeconds"),
                region=item.get("region", ""),
                payment_option=item.get("paymentOption", ""),
                cost=float(item.get("upfrontPaymentAmount") or 0.0),
            )
            for item in response.get("savingsPlans", [])
            if item.get("savingsPlanId")
        ]
        return CommitmentPage(records, response.get("nextToken"))
