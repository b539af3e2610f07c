"""Provider-neutral data model for recommendations, offerings and commitments"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

from ..exceptions import ValidationError


class ProviderType(str, Enum):
    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"

    @classmethod
    def parse(cls, value: Union[str, "ProviderType"]) -> "ProviderType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown provider: {value}")


class ServiceType(str, Enum):
    """Service categories a commitment can be purchased for"""
    COMPUTE = "compute"
    RELATIONAL_DB = "relational-db"
    NOSQL = "nosql"
    CACHE = "cache"
    SEARCH = "search"
    DATA_WAREHOUSE = "data-warehouse"
    STORAGE = "storage"
    SAVINGS_PLANS = "savings-plans"

    @classmethod
    def parse(cls, value: Union[str, "ServiceType"]) -> "ServiceType":
        """Parse a service type, accepting the short per-vendor aliases"""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        try:
            return cls(key)
        except ValueError:
            pass
        if key in _SERVICE_ALIASES:
            return _SERVICE_ALIASES[key]
        raise ValidationError(f"Unknown service type: {value}")


_SERVICE_ALIASES = {
    "ec2": ServiceType.COMPUTE,
    "vm": ServiceType.COMPUTE,
    "rds": ServiceType.RELATIONAL_DB,
    "sql": ServiceType.RELATIONAL_DB,
    "database": ServiceType.RELATIONAL_DB,
    "dynamodb": ServiceType.NOSQL,
    "cosmosdb": ServiceType.NOSQL,
    "elasticache": ServiceType.CACHE,
    "memorydb": ServiceType.CACHE,
    "redis": ServiceType.CACHE,
    "opensearch": ServiceType.SEARCH,
    "elasticsearch": ServiceType.SEARCH,
    "redshift": ServiceType.DATA_WAREHOUSE,
    "savingsplans": ServiceType.SAVINGS_PLANS,
    "savings-plan": ServiceType.SAVINGS_PLANS,
    "sp": ServiceType.SAVINGS_PLANS,
}


class CommitmentType(str, Enum):
    RESERVED_INSTANCE = "reserved-instance"
    SAVINGS_PLAN = "savings-plan"
    COMMITTED_USE = "committed-use"
    RESERVED_CAPACITY = "reserved-capacity"


class Term(str, Enum):
    """Reservation duration category"""
    ONE_YEAR = "1yr"
    THREE_YEAR = "3yr"

    @property
    def months(self) -> int:
        return 36 if self is Term.THREE_YEAR else 12

    @property
    def years(self) -> int:
        return self.months // 12

    @classmethod
    def from_months(cls, months: int) -> "Term":
        """Map a month count onto a term; only 12 and 36 are supported"""
        if months == 12:
            return cls.ONE_YEAR
        if months == 36:
            return cls.THREE_YEAR
        raise ValidationError(f"Unsupported term of {months} months (expected 12 or 36)")

    @classmethod
    def parse(cls, value: Union[str, int, "Term"]) -> "Term":
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            if value in (1, 3):
                return cls.ONE_YEAR if value == 1 else cls.THREE_YEAR
            return cls.from_months(value)

        key = re.sub(r"[\s_-]+", "", str(value).strip().lower())
        if key in ("1yr", "1", "1y", "1year", "oneyear", "12", "p1y"):
            return cls.ONE_YEAR
        if key in ("3yr", "3", "3y", "3year", "3years", "threeyear", "36", "p3y"):
            return cls.THREE_YEAR
        raise ValidationError(f"Unsupported term: {value}")


class PaymentOption(str, Enum):
    """Commercial upfront structure of a commitment"""
    ALL_UPFRONT = "all-upfront"
    PARTIAL_UPFRONT = "partial-upfront"
    NO_UPFRONT = "no-upfront"

    @classmethod
    def parse(cls, value: Union[str, "PaymentOption"]) -> "PaymentOption":
        """Parse provider spellings such as 'All Upfront', 'ALL_UPFRONT' or 'monthly'"""
        if isinstance(value, cls):
            return value
        key = re.sub(r"[\s_]+", "-", str(value).strip().lower())
        if key in ("all-upfront", "upfront", "allupfront"):
            return cls.ALL_UPFRONT
        if key in ("partial-upfront", "partial", "partialupfront"):
            return cls.PARTIAL_UPFRONT
        if key in ("no-upfront", "monthly", "noupfront", "none"):
            return cls.NO_UPFRONT
        raise ValidationError(f"Unsupported payment option: {value}")


class CommitmentState(str, Enum):
    ACTIVE = "active"
    PAYMENT_PENDING = "payment-pending"
    EXPIRED = "expired"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "CommitmentState":
        key = str(value or "").strip().lower().replace("_", "-")
        if key == "active":
            return cls.ACTIVE
        if key == "payment-pending":
            return cls.PAYMENT_PENDING
        if key in ("expired", "retired", "returned"):
            return cls.EXPIRED
        return cls.OTHER


# Service detail payloads. Each variant carries its service tag so translation
# and validation dispatch on the tag.

@dataclass
class ComputeDetails:
    service_type: ClassVar[ServiceType] = ServiceType.COMPUTE
    instance_type: str = ""
    platform: str = ""
    tenancy: str = ""
    scope: str = ""


@dataclass
class DatabaseDetails:
    service_type: ClassVar[ServiceType] = ServiceType.RELATIONAL_DB
    engine: str = ""
    engine_version: str = ""
    az_config: str = ""
    instance_class: str = ""
    deployment: str = ""

    @property
    def multi_az(self) -> bool:
        return self.az_config.lower() in ("multi-az", "multiaz", "multi")


@dataclass
class CacheDetails:
    service_type: ClassVar[ServiceType] = ServiceType.CACHE
    engine: str = ""
    node_type: str = ""
    shards: int = 0


@dataclass
class SearchDetails:
    service_type: ClassVar[ServiceType] = ServiceType.SEARCH
    instance_type: str = ""
    instance_count: int = 0
    master_enabled: bool = False
    master_node_type: str = ""
    master_node_count: int = 0
    data_node_storage: int = 0


@dataclass
class DataWarehouseDetails:
    service_type: ClassVar[ServiceType] = ServiceType.DATA_WAREHOUSE
    node_type: str = ""
    number_of_nodes: int = 0
    cluster_type: str = ""


@dataclass
class SavingsPlanDetails:
    service_type: ClassVar[ServiceType] = ServiceType.SAVINGS_PLANS
    plan_type: str = ""
    hourly_commitment: float = 0.0
    coverage: float = 0.0


@dataclass(frozen=True)
class NoDetails:
    """Sentinel for recommendations without a service-specific payload"""
    service_type: ClassVar[Optional[ServiceType]] = None


NO_DETAILS = NoDetails()

ServiceDetails = Union[
    ComputeDetails, DatabaseDetails, CacheDetails, SearchDetails,
    DataWarehouseDetails, SavingsPlanDetails, NoDetails,
]

DETAILS_BY_SERVICE = {
    ServiceType.COMPUTE: ComputeDetails,
    ServiceType.RELATIONAL_DB: DatabaseDetails,
    ServiceType.CACHE: CacheDetails,
    ServiceType.SEARCH: SearchDetails,
    ServiceType.DATA_WAREHOUSE: DataWarehouseDetails,
    ServiceType.SAVINGS_PLANS: SavingsPlanDetails,
}


def details_tag(details: Any) -> Optional[ServiceType]:
    """Return the service tag of a detail payload, None for the sentinel"""
    return getattr(details, "service_type", None)


def details_match(service: ServiceType, details: Any) -> bool:
    """Check that a detail payload agrees with a service type"""
    tag = details_tag(details)
    return tag is None or tag == service


@dataclass
class Recommendation:
    """Advisory suggestion to purchase a reservation"""

    provider: ProviderType
    service: ServiceType
    region: str
    resource_type: str
    count: int = 1
    term: Term = Term.ONE_YEAR
    payment_option: PaymentOption = PaymentOption.ALL_UPFRONT
    commitment_type: CommitmentType = CommitmentType.RESERVED_INSTANCE
    account: str = ""
    account_name: str = ""
    on_demand_cost: float = 0.0
    commitment_cost: float = 0.0
    estimated_savings: float = 0.0
    savings_percentage: float = 0.0
    upfront_cost: float = 0.0
    recurring_monthly_cost: float = 0.0
    coverage: float = 0.0
    details: ServiceDetails = NO_DETAILS
    source_recommendation: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def validate(self) -> None:
        """Raise ValidationError when the recommendation is not purchasable"""
        if not details_match(self.service, self.details):
            raise ValidationError(
                f"Detail payload for {details_tag(self.details).value} does not match "
                f"service type {self.service.value}"
            )
        if self.count <= 0:
            raise ValidationError(f"Invalid purchase count: {self.count}")
        if not self.resource_type:
            raise ValidationError("Recommendation has no resource type")

    def describe(self) -> str:
        return f"{self.count}x {self.resource_type} ({self.service.value}, {self.region}, {self.term.value})"

    def to_dict(self) -> Dict[str, Any]:
        details = {}
        if details_tag(self.details) is not None:
            details = {k: v for k, v in vars(self.details).items()}
        return {
            "provider": self.provider.value,
            "service": self.service.value,
            "region": self.region,
            "resource_type": self.resource_type,
            "count": self.count,
            "term": self.term.value,
            "payment_option": self.payment_option.value,
            "commitment_type": self.commitment_type.value,
            "account": self.account,
            "account_name": self.account_name,
            "on_demand_cost": self.on_demand_cost,
            "commitment_cost": self.commitment_cost,
            "estimated_savings": self.estimated_savings,
            "savings_percentage": self.savings_percentage,
            "upfront_cost": self.upfront_cost,
            "recurring_monthly_cost": self.recurring_monthly_cost,
            "coverage": self.coverage,
            "details": details,
            "source_recommendation": self.source_recommendation,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class RecurringCharge:
    amount: float
    frequency: str = "Hourly"


@dataclass(frozen=True)
class Offering:
    """Provider catalog entry describing a purchasable reservation"""

    offering_id: str
    resource_type: str
    duration_seconds: Optional[int]
    offering_type: str = ""
    fixed_price: Optional[float] = None
    usage_price: float = 0.0
    currency: str = "USD"
    recurring_charges: Tuple[RecurringCharge, ...] = ()
    payment_option: Optional[str] = None
    attributes: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def hourly_recurring(self) -> float:
        return sum(c.amount for c in self.recurring_charges if c.frequency.lower() == "hourly")


@dataclass
class PurchaseRecord:
    """Normalized commitment object returned by a provider purchase call"""

    commitment_id: str
    offering_id: str = ""
    fixed_price: Optional[float] = None
    recurring_charges: Tuple[RecurringCharge, ...] = ()
    duration_seconds: Optional[int] = None
    currency: str = ""
    state: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PurchaseResult:
    """Outcome of exactly one purchase attempt"""

    recommendation: Recommendation
    success: bool
    message: str
    commitment_id: str = ""
    offering_id: str = ""
    cost: float = 0.0
    currency: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def succeeded(cls, recommendation: Recommendation, commitment_id: str,
                  offering_id: str, cost: float, message: str,
                  currency: str = "USD") -> "PurchaseResult":
        return cls(
            recommendation=recommendation,
            success=True,
            message=message,
            commitment_id=commitment_id,
            offering_id=offering_id,
            cost=cost,
            currency=currency,
        )

    @classmethod
    def failed(cls, recommendation: Recommendation, message: str) -> "PurchaseResult":
        return cls(recommendation=recommendation, success=False, message=message or "purchase failed")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "commitment_id": self.commitment_id,
            "offering_id": self.offering_id,
            "cost": self.cost,
            "currency": self.currency,
            "timestamp": self.timestamp.isoformat(),
            "recommendation": self.recommendation.to_dict(),
        }


@dataclass
class CommitmentRecord:
    """Raw commitment row as returned by a provider listing call"""

    commitment_id: str
    resource_type: str
    count: int
    state: str
    start_date: Optional[datetime]
    duration_seconds: Optional[int]
    region: str = ""
    engine: str = ""
    payment_option: str = ""
    cost: float = 0.0
    account: str = ""


@dataclass
class Commitment:
    """Normalized existing reservation"""

    provider: ProviderType
    account: str
    commitment_id: str
    commitment_type: CommitmentType
    service: ServiceType
    region: str
    resource_type: str
    count: int
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    state: CommitmentState
    term: Term = Term.ONE_YEAR
    cost: float = 0.0
    engine: str = ""
    payment_option: Optional[PaymentOption] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "account": self.account,
            "commitment_id": self.commitment_id,
            "commitment_type": self.commitment_type.value,
            "service": self.service.value,
            "region": self.region,
            "resource_type": self.resource_type,
            "count": self.count,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "state": self.state.value,
            "term": self.term.value,
            "cost": self.cost,
            "engine": self.engine,
            "payment_option": self.payment_option.value if self.payment_option else None,
        }


@dataclass
class OfferingDetails:
    """Pricing view of a resolved offering"""

    offering_id: str
    resource_type: str
    term: Term
    payment_option: PaymentOption
    upfront_cost: float
    recurring_cost: float
    total_cost: float
    effective_hourly_rate: float
    currency: str = "USD"


@dataclass
class PriceQuote:
    """Hourly rates returned by a pricing lookup"""

    on_demand_rate: float
    reserved_rate: float
    currency: str = "USD"


@dataclass
class RecommendationParams:
    service: ServiceType
    region: Optional[str] = None
    term: Term = Term.ONE_YEAR
    payment_option: PaymentOption = PaymentOption.ALL_UPFRONT
    lookback_days: int = 7
    account_ids: List[str] = field(default_factory=list)
    include_regions: List[str] = field(default_factory=list)
    exclude_regions: List[str] = field(default_factory=list)

    def wants_region(self, region: str) -> bool:
        if self.include_regions and region not in self.include_regions:
            return False
        return region not in self.exclude_regions


@dataclass
class Account:
    account_id: str
    name: str = ""
    email: str = ""
    status: str = ""


@dataclass
class OfferingPage:
    offerings: List[Offering]
    next_token: Optional[str] = None


@dataclass
class CommitmentPage:
    records: List[CommitmentRecord]
    next_token: Optional[str] = None
