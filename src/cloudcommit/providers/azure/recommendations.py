"""Reservation recommendations from the Azure Consumption API"""

import logging
from typing import Any, Dict, List

from ...core.base.models import (
    CommitmentType,
    PaymentOption,
    ProviderType,
    Recommendation,
    RecommendationParams,
    ServiceType,
    Term,
)
from ...core.exceptions import ValidationError
from .rest import MANAGEMENT_URL, AzureRestClient

CONSUMPTION_API_VERSION = "2023-05-01"

RESOURCE_TYPES = {
    ServiceType.COMPUTE: "VirtualMachines",
    ServiceType.RELATIONAL_DB: "SQLDatabases",
    ServiceType.CACHE: "RedisCache",
    ServiceType.NOSQL: "CosmosDB",
}

LOOKBACK_PERIODS = {
    7: "Last7Days",
    30: "Last30Days",
    60: "Last60Days",
}

logger = logging.getLogger(__name__)


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class ConsumptionRecommendations:
    """Shared-scope reservation recommendations for one subscription"""

    def __init__(self, rest: AzureRestClient, subscription_id: str):
        self.rest = rest
        self.subscription_id = subscription_id

    def build_filter(self, params: RecommendationParams) -> str:
        term = "P3Y" if params.term == Term.THREE_YEAR else "P1Y"
        lookback = LOOKBACK_PERIODS.get(params.lookback_days, "Last7Days")
        return (
            f"properties/scope eq 'Shared' "
            f"and properties/resourceType eq '{RESOURCE_TYPES[params.service]}' "
            f"and properties/lookBackPeriod eq '{lookback}' "
            f"and properties/term eq '{term}'"
        )

    def get_recommendations(self, params: RecommendationParams) -> List[Recommendation]:
        if params.service not in RESOURCE_TYPES:
            raise ValidationError(f"Azure has no reservation recommendations for {params.service.value}")

        url = (
            f"{MANAGEMENT_URL}/subscriptions/{self.subscription_id}"
            f"/providers/Microsoft.Consumption/reservationRecommendations"
        )
        query = {"api-version": CONSUMPTION_API_VERSION, "$filter": self.build_filter(params)}

        recommendations = []
        for item in self.rest.iter_values(url, query):
            rec = self.parse_item(item, params)
            if rec is not None and params.wants_region(rec.region):
                recommendations.append(rec)

        logger.info(f"Azure returned {len(recommendations)} {params.service.value} recommendations")
        return recommendations

    def parse_item(self, item: Dict[str, Any], params: RecommendationParams):
        properties = item.get("properties", {})
        sku = item.get("sku") or properties.get("normalizedSize") or ""
        quantity = int(_float(properties.get("recommendedQuantity")))
        if not sku or quantity <= 0:
            logger.debug(f"Skipping Azure recommendation without sku or quantity: {item.get('id')}")
            return None

        term_months = params.term.months
        on_demand_total = _float(properties.get("costWithNoReservedInstances"))
        reserved_total = _float(properties.get("totalCostWithReservedInstances"))
        net_savings = _float(properties.get("netSavings"))
        payment_option = params.payment_option
        if payment_option == PaymentOption.PARTIAL_UPFRONT:
            # Azure bills either upfront or monthly
            payment_option = PaymentOption.NO_UPFRONT

        return Recommendation(
            provider=ProviderType.AZURE,
            service=params.service,
            region=item.get("location") or params.region or "",
            resource_type=sku,
            count=quantity,
            term=params.term,
            payment_option=payment_option,
            commitment_type=CommitmentType.RESERVED_INSTANCE,
            account=self.subscription_id,
            on_demand_cost=on_demand_total,
            commitment_cost=reserved_total,
            estimated_savings=net_savings,
            savings_percentage=(net_savings / on_demand_total * 100) if on_demand_total else 0.0,
            recurring_monthly_cost=reserved_total / term_months if payment_option == PaymentOption.NO_UPFRONT else 0.0,
            upfront_cost=reserved_total if payment_option == PaymentOption.ALL_UPFRONT else 0.0,
            source_recommendation="azure-consumption",
        )
