"""Purchase recommendations from AWS Cost Explorer"""

import logging
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ...core.base.models import (
    CacheDetails,
    CommitmentType,
    ComputeDetails,
    DatabaseDetails,
    DataWarehouseDetails,
    PaymentOption,
    ProviderType,
    Recommendation,
    RecommendationParams,
    SavingsPlanDetails,
    SearchDetails,
    ServiceType,
    Term,
)
from ...core.exceptions import TransportError, ValidationError
from ...core.ratelimit import RetryPolicy
from .base import is_throttling

logger = logging.getLogger(__name__)

CE_SERVICES = {
    ServiceType.COMPUTE: ("Amazon Elastic Compute Cloud - Compute",),
    ServiceType.RELATIONAL_DB: ("Amazon Relational Database Service",),
    ServiceType.CACHE: ("Amazon ElastiCache", "Amazon MemoryDB Service"),
    ServiceType.SEARCH: ("Amazon OpenSearch Service",),
    ServiceType.DATA_WAREHOUSE: ("Amazon Redshift",),
}

CE_PAYMENT_OPTIONS = {
    PaymentOption.ALL_UPFRONT: "ALL_UPFRONT",
    PaymentOption.PARTIAL_UPFRONT: "PARTIAL_UPFRONT",
    PaymentOption.NO_UPFRONT: "NO_UPFRONT",
}

CE_TERMS = {
    Term.ONE_YEAR: "ONE_YEAR",
    Term.THREE_YEAR: "THREE_YEARS",
}

CE_LOOKBACK = {
    7: "SEVEN_DAYS",
    30: "THIRTY_DAYS",
    60: "SIXTY_DAYS",
}

SAVINGS_PLAN_TYPES = {
    "COMPUTE_SP": "Compute",
    "EC2_INSTANCE_SP": "EC2Instance",
    "SAGEMAKER_SP": "SageMaker",
    "DATABASE_SP": "Database",
}

# Cost Explorer sometimes reports regions by display name
REGION_NAMES = {
    "US East (N. Virginia)": "us-east-1",
    "US East (Ohio)": "us-east-2",
    "US West (N. California)": "us-west-1",
    "US West (Oregon)": "us-west-2",
    "EU (Ireland)": "eu-west-1",
    "EU (Frankfurt)": "eu-central-1",
    "EU (London)": "eu-west-2",
    "EU (Paris)": "eu-west-3",
    "EU (Stockholm)": "eu-north-1",
    "EU (Milan)": "eu-south-1",
    "Europe (Milan)": "eu-south-1",
    "Europe (Spain)": "eu-south-2",
    "Europe (Zurich)": "eu-central-2",
    "Asia Pacific (Singapore)": "ap-southeast-1",
    "Asia Pacific (Sydney)": "ap-southeast-2",
    "Asia Pacific (Jakarta)": "ap-southeast-3",
    "Asia Pacific (Melbourne)": "ap-southeast-4",
    "Asia Pacific (Tokyo)": "ap-northeast-1",
    "Asia Pacific (Seoul)": "ap-northeast-2",
    "Asia Pacific (Osaka)": "ap-northeast-3",
    "Asia Pacific (Mumbai)": "ap-south-1",
    "Asia Pacific (Hyderabad)": "ap-south-2",
    "Asia Pacific (Hong Kong)": "ap-east-1",
    "South America (Sao Paulo)": "sa-east-1",
    "Canada (Central)": "ca-central-1",
    "Middle East (Bahrain)": "me-south-1",
    "Middle East (UAE)": "me-central-1",
    "Africa (Cape Town)": "af-south-1",
    "Israel (Tel Aviv)": "il-central-1",
}


def normalize_region(region: str) -> str:
    return REGION_NAMES.get(region, region)


def lookback_period(days: int) -> str:
    return CE_LOOKBACK.get(days, "SEVEN_DAYS")


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _parse_count(detail: Dict[str, Any]) -> int:
    quantity = detail.get("RecommendedNumberOfInstancesToPurchase")
    if quantity is None:
        raise ValidationError("recommended quantity not found")
    try:
        return int(float(quantity))
    except ValueError:
        raise ValidationError(f"failed to parse quantity '{quantity}'")


def _ec2_details(rec: Recommendation, instance: Dict[str, Any]) -> None:
    info = instance["EC2InstanceDetails"]
    rec.resource_type = info.get("InstanceType", "")
    rec.region = normalize_region(info.get("Region", rec.region))
    rec.details = ComputeDetails(
        instance_type=rec.resource_type,
        platform=info.get("Platform", ""),
        tenancy=info.get("Tenancy") or "shared",
        scope="availability-zone" if info.get("AvailabilityZone") else "region",
    )


def _rds_details(rec: Recommendation, instance: Dict[str, Any]) -> None:
    info = instance["RDSInstanceDetails"]
    rec.resource_type = info.get("InstanceType", "")
    rec.region = normalize_region(info.get("Region", rec.region))
    rec.details = DatabaseDetails(
        engine=info.get("DatabaseEngine", ""),
        az_config="multi-az" if info.get("DeploymentOption") == "Multi-AZ" else "single-az",
        instance_class=rec.resource_type,
        deployment=info.get("DeploymentOption", ""),
    )


def _elasticache_details(rec: Recommendation, instance: Dict[str, Any]) -> None:
    info = instance["ElastiCacheInstanceDetails"]
    rec.resource_type = info.get("NodeType", "")
    rec.region = normalize_region(info.get("Region", rec.region))
    rec.details = CacheDetails(engine=info.get("ProductDescription", ""), node_type=rec.resource_type)


def _memorydb_details(rec: Recommendation, instance: Dict[str, Any]) -> None:
    info = instance["MemoryDBInstanceDetails"]
    rec.resource_type = info.get("NodeType", "")
    rec.region = normalize_region(info.get("Region", rec.region))
    rec.details = CacheDetails(engine="memorydb", node_type=rec.resource_type)


def _opensearch_details(rec: Recommendation, instance: Dict[str, Any]) -> None:
    info = instance["ESInstanceDetails"]
    if info.get("InstanceClass") and info.get("InstanceSize"):
        rec.resource_type = f"{info['InstanceClass']}.{info['InstanceSize']}"
    rec.region = normalize_region(info.get("Region", rec.region))
    rec.details = SearchDetails(instance_type=rec.resource_type, instance_count=rec.count)


def _redshift_details(rec: Recommendation, instance: Dict[str, Any]) -> None:
    info = instance["RedshiftInstanceDetails"]
    rec.resource_type = info.get("NodeType", "")
    rec.region = normalize_region(info.get("Region", rec.region))
    rec.details = DataWarehouseDetails(
        node_type=rec.resource_type,
        number_of_nodes=rec.count,
        cluster_type="single-node" if rec.count == 1 else "multi-node",
    )


# Keyed by the InstanceDetails member Cost Explorer populates
DETAIL_PARSERS: Dict[str, Callable[[Recommendation, Dict[str, Any]], None]] = {
    "EC2InstanceDetails": _ec2_details,
    "RDSInstanceDetails": _rds_details,
    "ElastiCacheInstanceDetails": _elasticache_details,
    "MemoryDBInstanceDetails": _memorydb_details,
    "ESInstanceDetails": _opensearch_details,
    "RedshiftInstanceDetails": _redshift_details,
}


class CostExplorerRecommendations:
    """Reservation and Savings Plans purchase recommendations.

    Cost Explorer throttles aggressively, so every page request goes through
    a RetryPolicy that retries throttling errors only.
    """

    def __init__(self, client: Any, retry_policy: Optional[RetryPolicy] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.cancel_event = cancel_event

    def _call(self, operation: str, **kwargs) -> Dict[str, Any]:
        try:
            return self.retry_policy.call(
                getattr(self.client, operation),
                is_retryable=is_throttling,
                cancel_event=self.cancel_event,
                **kwargs,
            )
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"{operation} failed", e)

    def _pages(self, operation: str, **kwargs) -> Iterator[Dict[str, Any]]:
        token = None
        while True:
            params = dict(kwargs)
            if token:
                params["NextPageToken"] = token
            response = self._call(operation, **params)
            yield response
            token = response.get("NextPageToken")
            if not token:
                return

    def get_recommendations(self, params: RecommendationParams) -> List[Recommendation]:
        if params.service == ServiceType.SAVINGS_PLANS:
            recommendations = self.get_savings_plans_recommendations(params)
        else:
            recommendations = self.get_reservation_recommendations(params)

        selected = [
            rec for rec in recommendations
            if params.wants_region(rec.region)
            and (not params.account_ids or rec.account in params.account_ids)
        ]
        logger.info(
            f"Cost Explorer returned {len(recommendations)} {params.service.value} "
            f"recommendations, {len(selected)} selected"
        )
        return selected

    def get_reservation_recommendations(self, params: RecommendationParams) -> List[Recommendation]:
        if params.service not in CE_SERVICES:
            raise ValidationError(f"Cost Explorer has no reservation recommendations for {params.service.value}")

        recommendations = []
        for ce_service in CE_SERVICES[params.service]:
            pages = self._pages(
                "get_reservation_purchase_recommendation",
                Service=ce_service,
                AccountScope="LINKED",
                LookbackPeriodInDays=lookback_period(params.lookback_days),
                TermInYears=CE_TERMS[params.term],
                PaymentOption=CE_PAYMENT_OPTIONS[params.payment_option],
            )
            for page in pages:
                for group in page.get("Recommendations", []):
                    for detail in group.get("RecommendationDetails", []):
                        try:
                            recommendations.append(self.parse_reservation_detail(detail, params))
                        except (ValidationError, KeyError) as e:
                            logger.warning(f"Skipping {ce_service} recommendation: {e}")
        return recommendations

    def parse_reservation_detail(self, detail: Dict[str, Any],
                                 params: RecommendationParams) -> Recommendation:
        rec = Recommendation(
            provider=ProviderType.AWS,
            service=params.service,
            region=params.region or "",
            resource_type="",
            count=_parse_count(detail),
            term=params.term,
            payment_option=params.payment_option,
            commitment_type=CommitmentType.RESERVED_INSTANCE,
            account=detail.get("AccountId", ""),
            on_demand_cost=_float(detail.get("EstimatedMonthlyOnDemandCost")),
            commitment_cost=_float(detail.get("UpfrontCost")),
            estimated_savings=_float(detail.get("EstimatedMonthlySavingsAmount")),
            savings_percentage=_float(detail.get("EstimatedMonthlySavingsPercentage")),
            upfront_cost=_float(detail.get("UpfrontCost")),
            recurring_monthly_cost=_float(detail.get("RecurringStandardMonthlyCost")),
            coverage=_float(detail.get("AverageUtilization")),
            source_recommendation="cost-explorer",
        )

        instance = detail.get("InstanceDetails") or {}
        for key, parser in DETAIL_PARSERS.items():
            if instance.get(key):
                parser(rec, instance)
                break
        else:
            raise ValidationError(f"{params.service.value} instance details not found")

        if not rec.resource_type:
            raise ValidationError("recommendation has no instance type")
        return rec

    def get_savings_plans_recommendations(self, params: RecommendationParams,
                                          plan_types: Optional[List[str]] = None) -> List[Recommendation]:
        recommendations = []
        for plan_type in plan_types or list(SAVINGS_PLAN_TYPES):
            try:
                pages = list(self._pages(
                    "get_savings_plans_purchase_recommendation",
                    SavingsPlansType=plan_type,
                    AccountScope="LINKED",
                    LookbackPeriodInDays=lookback_period(params.lookback_days),
                    TermInYears=CE_TERMS[params.term],
                    PaymentOption=CE_PAYMENT_OPTIONS[params.payment_option],
                ))
            except TransportError as e:
                logger.warning(f"Failed to get {plan_type} recommendations: {e}")
                continue

            for page in pages:
                body = page.get("SavingsPlansPurchaseRecommendation") or {}
                for detail in body.get("SavingsPlansPurchaseRecommendationDetails", []):
                    recommendations.append(self.parse_savings_plan_detail(detail, params, plan_type))
        return recommendations

    def parse_savings_plan_detail(self, detail: Dict[str, Any], params: RecommendationParams,
                                  plan_type: str) -> Recommendation:
        plan_name = SAVINGS_PLAN_TYPES.get(plan_type, plan_type)
        savings_percent = _float(detail.get("EstimatedSavingsPercentage"))
        return Recommendation(
            provider=ProviderType.AWS,
            service=ServiceType.SAVINGS_PLANS,
            region=params.region or "",
            resource_type=plan_name,
            count=1,
            term=params.term,
            payment_option=params.payment_option,
            commitment_type=CommitmentType.SAVINGS_PLAN,
            account=detail.get("AccountId", ""),
            on_demand_cost=_float(detail.get("CurrentAverageHourlyOnDemandSpend")) * 730,
            commitment_cost=_float(detail.get("UpfrontCost")),
            estimated_savings=_float(detail.get("EstimatedMonthlySavingsAmount")),
            savings_percentage=savings_percent,
            upfront_cost=_float(detail.get("UpfrontCost")),
            coverage=_float(detail.get("EstimatedAverageUtilization")),
            details=SavingsPlanDetails(
                plan_type=plan_name,
                hourly_commitment=_float(detail.get("HourlyCommitmentToPurchase")),
                coverage=savings_percent,
            ),
            source_recommendation="cost-explorer",
        )
