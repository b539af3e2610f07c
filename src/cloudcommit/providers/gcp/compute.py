"""Compute Engine committed use discounts"""

import re
import threading
import uuid
from typing import Any, Dict, List, Optional, Tuple

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import compute_v1

from ...core.base.models import (
    CommitmentPage,
    CommitmentRecord,
    CommitmentState,
    CommitmentType,
    Offering,
    OfferingPage,
    ProviderType,
    PurchaseRecord,
    Recommendation,
    RecurringCharge,
    ServiceType,
    Term,
)
from ...core.base.service import BaseServiceClient
from ...core.exceptions import CloudCommitError, NotFoundError, TransportError
from ...core.inventory import parse_timestamp
from ...core.matching import ONE_YEAR_SECONDS, THREE_YEAR_SECONDS
from .pricing import BillingCatalogPricing

PLANS = {
    Term.ONE_YEAR: "TWELVE_MONTH",
    Term.THREE_YEAR: "THIRTY_SIX_MONTH",
}

PLAN_DURATIONS = {
    "TWELVE_MONTH": ONE_YEAR_SECONDS,
    "THIRTY_SIX_MONTH": THREE_YEAR_SECONDS,
}

COMMITMENT_TYPES = {
    "n1": "GENERAL_PURPOSE",
    "n2": "GENERAL_PURPOSE_N2",
    "n2d": "GENERAL_PURPOSE_N2D",
    "e2": "GENERAL_PURPOSE_E2",
    "t2d": "GENERAL_PURPOSE_T2D",
    "c2": "COMPUTE_OPTIMIZED",
    "c2d": "COMPUTE_OPTIMIZED_C2D",
    "c3": "COMPUTE_OPTIMIZED_C3",
    "m1": "MEMORY_OPTIMIZED",
    "m2": "MEMORY_OPTIMIZED",
    "m3": "MEMORY_OPTIMIZED_M3",
    "a2": "ACCELERATOR_OPTIMIZED",
}

DESCRIPTION_PREFIX = "cloudcommit:"


def commitment_type_for(machine_type: str) -> str:
    return COMMITMENT_TYPES.get(machine_type.split("-", 1)[0].lower(), "GENERAL_PURPOSE")


def commitment_name(machine_type: str) -> str:
    """RFC 1035 name: lowercase, at most 63 characters"""
    base = re.sub(r"[^a-z0-9-]", "-", machine_type.lower()).strip("-")
    return f"cud-{base}"[:54] + f"-{uuid.uuid4().hex[:8]}"


def describe_purchase(machine_type: str, quantity: int) -> str:
    return f"{DESCRIPTION_PREFIX}{machine_type}:{quantity}"


def parse_description(description: str) -> Optional[Tuple[str, int]]:
    """Recover (machine type, count) from a commitment bought by this tool"""
    if not description.startswith(DESCRIPTION_PREFIX):
        return None
    machine_type, _, count = description[len(DESCRIPTION_PREFIX):].rpartition(":")
    if not machine_type or not count.isdigit():
        return None
    return machine_type, int(count)


class ComputeEngineClient(BaseServiceClient):
    """Region commitments for Compute Engine machine types.

    The catalog is the machine types available in the region's zones, each
    offered under both commitment plans. A purchase commits the vCPUs and
    memory of ``count`` machines of the type.
    """

    provider = ProviderType.GCP
    service_type = ServiceType.COMPUTE
    commitment_type = CommitmentType.COMMITTED_USE
    service_label = "Compute Engine"
    purchase_unit = "machines"
    state_map = {
        "active": CommitmentState.ACTIVE,
        "not_yet_active": CommitmentState.PAYMENT_PENDING,
        "creating": CommitmentState.PAYMENT_PENDING,
        "expired": CommitmentState.EXPIRED,
        "cancelled": CommitmentState.EXPIRED,
    }

    def __init__(self, project_id: str, region: str, credentials: Any = None,
                 machine_types: Optional[compute_v1.MachineTypesClient] = None,
                 commitments: Optional[compute_v1.RegionCommitmentsClient] = None,
                 pricing: Optional[BillingCatalogPricing] = None,
                 operation_timeout: float = 300):
        self.project_id = project_id
        self.credentials = credentials
        self.operation_timeout = operation_timeout
        self._machine_types = machine_types
        self._commitments = commitments
        self._shapes: Dict[str, Tuple[int, int]] = {}
        super().__init__(region, account=project_id, pricing=pricing)

    @property
    def machine_types(self) -> compute_v1.MachineTypesClient:
        if self._machine_types is None:
            self._machine_types = compute_v1.MachineTypesClient(credentials=self.credentials)
        return self._machine_types

    @property
    def commitments(self) -> compute_v1.RegionCommitmentsClient:
        if self._commitments is None:
            self._commitments = compute_v1.RegionCommitmentsClient(credentials=self.credentials)
        return self._commitments

    def _regional_machine_types(self, name_filter: Optional[str] = None):
        """Yield machine types offered in any zone of the region"""
        request = compute_v1.AggregatedListMachineTypesRequest(project=self.project_id)
        if name_filter:
            request.filter = f'name = "{name_filter}"'
        try:
            for scope, scoped in self.machine_types.aggregated_list(request=request):
                if not scope.startswith(f"zones/{self.region}-"):
                    continue
                for machine_type in scoped.machine_types:
                    yield machine_type
        except GoogleAPICallError as e:
            raise TransportError("aggregated_list machine types failed", e)

    def shape(self, machine_type: str) -> Tuple[int, float]:
        """vCPU count and memory in GB of a machine type"""
        if machine_type not in self._shapes:
            for found in self._regional_machine_types(machine_type):
                self._shapes[found.name] = (found.guest_cpus, found.memory_mb)
                if found.name == machine_type:
                    break
            else:
                raise NotFoundError(f"machine type {machine_type} is not offered in {self.region}",
                                    resource_type=machine_type)
        vcpus, memory_mb = self._shapes[machine_type]
        return vcpus, memory_mb / 1024

    def resolvable_offering_types(self, recommendation):
        return (PLANS[recommendation.term],)

    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        offerings = []
        seen = set()
        for machine_type in self._regional_machine_types(recommendation.resource_type):
            if machine_type.name in seen:
                continue
            seen.add(machine_type.name)
            self._shapes[machine_type.name] = (machine_type.guest_cpus, machine_type.memory_mb)
            for plan, duration in PLAN_DURATIONS.items():
                offerings.append(Offering(
                    offering_id=f"{machine_type.name}/{self.region}/{plan}",
                    resource_type=machine_type.name,
                    duration_seconds=duration,
                    offering_type=plan,
                    attributes={"vcpus": machine_type.guest_cpus, "memory_mb": machine_type.memory_mb},
                ))
        return OfferingPage(offerings)

    def _hourly_charges(self, offering: Offering, quantity: int,
                        recommendation: Recommendation) -> Tuple[RecurringCharge, ...]:
        if self.pricing is None:
            return ()
        try:
            quote = self.pricing.get_price(offering.resource_type, self.region, recommendation.term)
        except CloudCommitError as e:
            self.logger.warning(f"Could not price commitment for {offering.resource_type}: {e}")
            return ()
        return (RecurringCharge(amount=quote.reserved_rate * quantity),)

    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        vcpus = int(offering.attributes.get("vcpus", 0))
        memory_mb = int(offering.attributes.get("memory_mb", 0))
        commitment = compute_v1.Commitment(
            name=commitment_name(offering.resource_type),
            plan=offering.offering_type,
            type_=commitment_type_for(offering.resource_type),
            description=describe_purchase(offering.resource_type, quantity),
            resources=[
                compute_v1.ResourceCommitment(type_="VCPU", amount=vcpus * quantity),
                compute_v1.ResourceCommitment(type_="MEMORY", amount=memory_mb * quantity),
            ],
        )

        self.logger.debug(f"Inserting commitment {commitment.name} in {self.region}")
        try:
            operation = self.commitments.insert(
                project=self.project_id, region=self.region, commitment_resource=commitment,
            )
            operation.result(timeout=self.operation_timeout)
        except GoogleAPICallError as e:
            raise TransportError("commitment insert failed", e)

        if getattr(operation, "error_code", None):
            raise TransportError(f"commitment insert failed: {operation.error_message}")

        return PurchaseRecord(
            commitment_id=commitment.name,
            offering_id=offering.offering_id,
            recurring_charges=self._hourly_charges(offering, quantity, recommendation),
            duration_seconds=offering.duration_seconds,
            currency=offering.currency,
        )

    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        request = compute_v1.ListRegionCommitmentsRequest(
            project=self.project_id, region=self.region, max_results=100,
        )
        if page_token:
            request.page_token = page_token
        try:
            response = next(iter(self.commitments.list(request=request).pages))
        except GoogleAPICallError as e:
            raise TransportError("list region commitments failed", e)

        records = []
        for item in response.items:
            parsed = parse_description(item.description or "")
            resource_type, count = parsed or (item.type_, 1)
            records.append(CommitmentRecord(
                commitment_id=item.name,
                resource_type=resource_type,
                count=count,
                state=item.status,
                start_date=parse_timestamp(item.start_timestamp),
                duration_seconds=PLAN_DURATIONS.get(item.plan),
                region=self.region,
                payment_option="no-upfront",
            ))
        return CommitmentPage(records, response.next_page_token or None)

    def list_valid_resource_types(self) -> List[str]:
        return sorted({machine_type.name for machine_type in self._regional_machine_types()})
