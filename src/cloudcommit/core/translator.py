"""Conversion between the legacy and current generations of the data model.

All functions are pure. Service types and detail payloads are mapped through
lookup tables keyed by the payload's tag; an unknown legacy service falls back
to EC2/compute and an unknown payload becomes ``NO_DETAILS``.

The legacy EC2 and RDS records have no instance field, so
``ComputeDetails.instance_type`` and ``DatabaseDetails.instance_class`` come
back as the recommendation's resource type.
"""

from typing import Any, Callable, Dict, Union

from .base.models import (
    NO_DETAILS,
    CacheDetails,
    Commitment,
    CommitmentState,
    CommitmentType,
    ComputeDetails,
    DatabaseDetails,
    DataWarehouseDetails,
    OfferingDetails,
    PaymentOption,
    ProviderType,
    PurchaseResult,
    Recommendation,
    SavingsPlanDetails,
    SearchDetails,
    ServiceType,
    Term,
    details_tag,
)
from . import legacy
from .legacy import (
    ExistingReservation,
    InternalOfferingDetails,
    InternalPurchaseResult,
    InternalRecommendation,
    LegacyServiceType,
)

MEMORYDB_ENGINE = "memorydb"

DEFAULT_SERVICE = ServiceType.COMPUTE
DEFAULT_LEGACY_SERVICE = LegacyServiceType.EC2

_TO_LEGACY_SERVICE = {
    ServiceType.COMPUTE: LegacyServiceType.EC2,
    ServiceType.RELATIONAL_DB: LegacyServiceType.RDS,
    ServiceType.CACHE: LegacyServiceType.ELASTICACHE,
    ServiceType.SEARCH: LegacyServiceType.OPENSEARCH,
    ServiceType.DATA_WAREHOUSE: LegacyServiceType.REDSHIFT,
    ServiceType.SAVINGS_PLANS: LegacyServiceType.SAVINGS_PLANS,
    ServiceType.NOSQL: LegacyServiceType.NOSQL,
    ServiceType.STORAGE: LegacyServiceType.STORAGE,
}

_FROM_LEGACY_SERVICE = {
    LegacyServiceType.EC2: ServiceType.COMPUTE,
    LegacyServiceType.RDS: ServiceType.RELATIONAL_DB,
    LegacyServiceType.ELASTICACHE: ServiceType.CACHE,
    LegacyServiceType.MEMORYDB: ServiceType.CACHE,
    LegacyServiceType.OPENSEARCH: ServiceType.SEARCH,
    LegacyServiceType.ELASTICSEARCH: ServiceType.SEARCH,
    LegacyServiceType.REDSHIFT: ServiceType.DATA_WAREHOUSE,
    LegacyServiceType.SAVINGS_PLANS: ServiceType.SAVINGS_PLANS,
    LegacyServiceType.NOSQL: ServiceType.NOSQL,
    LegacyServiceType.STORAGE: ServiceType.STORAGE,
}


def to_legacy_service(service: ServiceType, engine: str = "") -> LegacyServiceType:
    """Map a current service type onto its legacy name"""
    if service == ServiceType.CACHE and engine.lower() == MEMORYDB_ENGINE:
        return LegacyServiceType.MEMORYDB
    return _TO_LEGACY_SERVICE.get(service, DEFAULT_LEGACY_SERVICE)


def legacy_service_from_name(name: Union[str, LegacyServiceType]) -> LegacyServiceType:
    """Parse a legacy service name, accepting short names such as 'RDS'"""
    if isinstance(name, LegacyServiceType):
        return name
    for member in LegacyServiceType:
        if name == member.value or name.lower() == member.short_name.lower():
            return member
    return DEFAULT_LEGACY_SERVICE


def from_legacy_service(service: Union[str, LegacyServiceType]) -> ServiceType:
    return _FROM_LEGACY_SERVICE.get(legacy_service_from_name(service), DEFAULT_SERVICE)


# Detail payloads, current -> legacy. Keyed by the payload's service tag.

def _compute_to_legacy(details: ComputeDetails, rec: Recommendation) -> Any:
    return legacy.EC2Details(platform=details.platform, tenancy=details.tenancy, scope=details.scope)


def _database_to_legacy(details: DatabaseDetails, rec: Recommendation) -> Any:
    return legacy.RDSDetails(
        engine=details.engine,
        az_config=details.az_config,
        engine_version=details.engine_version,
        deployment=details.deployment,
    )


def _cache_to_legacy(details: CacheDetails, rec: Recommendation) -> Any:
    if details.engine.lower() == MEMORYDB_ENGINE:
        return legacy.MemoryDBDetails(
            node_type=details.node_type,
            number_of_nodes=rec.count,
            shard_count=details.shards,
        )
    return legacy.ElastiCacheDetails(engine=details.engine, node_type=details.node_type, shards=details.shards)


def _search_to_legacy(details: SearchDetails, rec: Recommendation) -> Any:
    return legacy.OpenSearchDetails(
        instance_type=details.instance_type,
        instance_count=details.instance_count,
        master_enabled=details.master_enabled,
        master_type=details.master_node_type,
        master_count=details.master_node_count,
        data_node_storage=details.data_node_storage,
    )


def _warehouse_to_legacy(details: DataWarehouseDetails, rec: Recommendation) -> Any:
    return legacy.RedshiftDetails(
        node_type=details.node_type,
        number_of_nodes=details.number_of_nodes,
        cluster_type=details.cluster_type,
    )


def _savings_plan_to_legacy(details: SavingsPlanDetails, rec: Recommendation) -> Any:
    return legacy.SavingsPlanDetails(
        plan_type=details.plan_type,
        hourly_commitment=details.hourly_commitment,
        coverage=details.coverage,
    )


_DETAILS_TO_LEGACY: Dict[ServiceType, Callable[[Any, Recommendation], Any]] = {
    ServiceType.COMPUTE: _compute_to_legacy,
    ServiceType.RELATIONAL_DB: _database_to_legacy,
    ServiceType.CACHE: _cache_to_legacy,
    ServiceType.SEARCH: _search_to_legacy,
    ServiceType.DATA_WAREHOUSE: _warehouse_to_legacy,
    ServiceType.SAVINGS_PLANS: _savings_plan_to_legacy,
}


# Detail payloads, legacy -> current. Keyed by the legacy record's detail_type.

_DETAILS_FROM_LEGACY: Dict[str, Callable[[Any, InternalRecommendation], Any]] = {
    "ec2": lambda d, rec: ComputeDetails(
        instance_type=rec.instance_type, platform=d.platform, tenancy=d.tenancy, scope=d.scope,
    ),
    "rds": lambda d, rec: DatabaseDetails(
        engine=d.engine,
        engine_version=d.engine_version,
        az_config=d.az_config,
        instance_class=rec.instance_type,
        deployment=d.deployment,
    ),
    "elasticache": lambda d, rec: CacheDetails(engine=d.engine, node_type=d.node_type, shards=d.shards),
    "memorydb": lambda d, rec: CacheDetails(engine=MEMORYDB_ENGINE, node_type=d.node_type, shards=d.shard_count),
    "opensearch": lambda d, rec: SearchDetails(
        instance_type=d.instance_type,
        instance_count=d.instance_count,
        master_enabled=d.master_enabled,
        master_node_type=d.master_type,
        master_node_count=d.master_count,
        data_node_storage=d.data_node_storage,
    ),
    "redshift": lambda d, rec: DataWarehouseDetails(
        node_type=d.node_type, number_of_nodes=d.number_of_nodes, cluster_type=d.cluster_type,
    ),
    "savingsplans": lambda d, rec: SavingsPlanDetails(
        plan_type=d.plan_type, hourly_commitment=d.hourly_commitment, coverage=d.coverage,
    ),
}


def details_to_legacy(rec: Recommendation) -> Any:
    convert = _DETAILS_TO_LEGACY.get(details_tag(rec.details))
    if convert is None:
        return NO_DETAILS
    return convert(rec.details, rec)


def details_from_legacy(internal: InternalRecommendation) -> Any:
    convert = _DETAILS_FROM_LEGACY.get(getattr(internal.service_details, "detail_type", None))
    if convert is None:
        return NO_DETAILS
    return convert(internal.service_details, internal)


def _cache_engine(details: Any) -> str:
    return getattr(details, "engine", "") if details_tag(details) == ServiceType.CACHE else ""


def _parse_commitment_type(value: str) -> CommitmentType:
    try:
        return CommitmentType(value)
    except ValueError:
        return CommitmentType.RESERVED_INSTANCE


def to_internal(rec: Recommendation) -> InternalRecommendation:
    """Convert a current recommendation to the legacy layout"""
    return InternalRecommendation(
        service=to_legacy_service(rec.service, _cache_engine(rec.details)),
        region=rec.region,
        instance_type=rec.resource_type,
        count=rec.count,
        payment_option=rec.payment_option.value,
        term=rec.term.months,
        provider=rec.provider.value,
        commitment_type=rec.commitment_type.value,
        account_id=rec.account,
        account_name=rec.account_name,
        estimated_cost=rec.commitment_cost,
        current_cost=rec.on_demand_cost,
        estimated_savings=rec.estimated_savings,
        savings_percent=rec.savings_percentage,
        coverage=rec.coverage,
        upfront_cost=rec.upfront_cost,
        recurring_monthly_cost=rec.recurring_monthly_cost,
        estimated_monthly_on_demand=rec.on_demand_cost,
        service_details=details_to_legacy(rec),
        source_recommendation=rec.source_recommendation,
        timestamp=rec.timestamp,
    )


def from_internal(internal: InternalRecommendation) -> Recommendation:
    """Convert a legacy recommendation to the current model.

    Raises:
        ValidationError: if the term is not 12 or 36 months or the payment
            option or provider is unknown
    """
    return Recommendation(
        provider=ProviderType.parse(internal.provider or "aws"),
        service=from_legacy_service(internal.service),
        region=internal.region,
        resource_type=internal.instance_type,
        count=internal.count,
        term=Term.from_months(internal.term),
        payment_option=PaymentOption.parse(internal.payment_option),
        commitment_type=_parse_commitment_type(internal.commitment_type),
        account=internal.account_id,
        account_name=internal.account_name,
        on_demand_cost=internal.current_cost,
        commitment_cost=internal.estimated_cost,
        estimated_savings=internal.estimated_savings,
        savings_percentage=internal.savings_percent,
        upfront_cost=internal.upfront_cost,
        recurring_monthly_cost=internal.recurring_monthly_cost,
        coverage=internal.coverage,
        details=details_from_legacy(internal),
        source_recommendation=internal.source_recommendation,
        timestamp=internal.timestamp,
    )


def to_internal_result(result: PurchaseResult) -> InternalPurchaseResult:
    return InternalPurchaseResult(
        config=to_internal(result.recommendation),
        success=result.success,
        message=result.message,
        purchase_id=result.offering_id,
        reservation_id=result.commitment_id,
        actual_cost=result.cost,
        currency=result.currency,
        timestamp=result.timestamp,
    )


def from_internal_result(internal: InternalPurchaseResult) -> PurchaseResult:
    return PurchaseResult(
        recommendation=from_internal(internal.config),
        success=internal.success,
        message=internal.message,
        commitment_id=internal.reservation_id,
        offering_id=internal.purchase_id,
        cost=internal.actual_cost,
        currency=internal.currency,
        timestamp=internal.timestamp,
    )


def to_internal_commitment(commitment: Commitment) -> ExistingReservation:
    return ExistingReservation(
        reservation_id=commitment.commitment_id,
        service=to_legacy_service(commitment.service, commitment.engine),
        instance_type=commitment.resource_type,
        region=commitment.region,
        count=commitment.count,
        state=commitment.state.value,
        start_date=commitment.start_date,
        end_date=commitment.end_date,
        term=commitment.term.months,
        engine=commitment.engine,
        payment_option=commitment.payment_option.value if commitment.payment_option else "",
        account_id=commitment.account,
        provider=commitment.provider.value,
        commitment_type=commitment.commitment_type.value,
        cost=commitment.cost,
    )


def from_internal_commitment(reservation: ExistingReservation) -> Commitment:
    service = legacy_service_from_name(reservation.service)
    engine = reservation.engine
    if service == LegacyServiceType.MEMORYDB and not engine:
        engine = MEMORYDB_ENGINE

    return Commitment(
        provider=ProviderType.parse(reservation.provider or "aws"),
        account=reservation.account_id,
        commitment_id=reservation.reservation_id,
        commitment_type=_parse_commitment_type(reservation.commitment_type),
        service=from_legacy_service(service),
        region=reservation.region,
        resource_type=reservation.instance_type,
        count=reservation.count,
        start_date=reservation.start_date,
        end_date=reservation.end_date,
        state=CommitmentState.parse(reservation.state),
        term=Term.from_months(reservation.term),
        cost=reservation.cost,
        engine=engine,
        payment_option=PaymentOption.parse(reservation.payment_option) if reservation.payment_option else None,
    )


def to_internal_offering_details(details: OfferingDetails) -> InternalOfferingDetails:
    return InternalOfferingDetails(
        offering_id=details.offering_id,
        instance_type=details.resource_type,
        term=details.term.months,
        payment_option=details.payment_option.value,
        upfront_cost=details.upfront_cost,
        recurring_cost=details.recurring_cost,
        total_cost=details.total_cost,
        effective_hourly_rate=details.effective_hourly_rate,
        currency_code=details.currency,
    )


def from_internal_offering_details(internal: InternalOfferingDetails) -> OfferingDetails:
    return OfferingDetails(
        offering_id=internal.offering_id,
        resource_type=internal.instance_type,
        term=Term.from_months(internal.term),
        payment_option=PaymentOption.parse(internal.payment_option),
        upfront_cost=internal.upfront_cost,
        recurring_cost=internal.recurring_cost,
        total_cost=internal.total_cost,
        effective_hourly_rate=internal.effective_hourly_rate,
        currency=internal.currency_code,
    )
