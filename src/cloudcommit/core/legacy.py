"""Legacy (AWS-centric) generation of the internal data model.

Recommendation files and purchase reports written by earlier releases use this
layout: long AWS service names (plus neutral NoSQL and storage categories),
terms expressed in months, `instance_type` instead of a neutral resource type
and one detail record per AWS service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional, Union

from .base.models import NO_DETAILS, NoDetails


class LegacyServiceType(str, Enum):
    RDS = "Amazon Relational Database Service"
    ELASTICACHE = "Amazon ElastiCache"
    EC2 = "Amazon Elastic Compute Cloud"
    OPENSEARCH = "Amazon OpenSearch Service"
    ELASTICSEARCH = "Amazon Elasticsearch Service"
    REDSHIFT = "Amazon Redshift"
    MEMORYDB = "Amazon MemoryDB"
    SAVINGS_PLANS = "Amazon Savings Plans"
    NOSQL = "NoSQL Database"
    STORAGE = "Object Storage"

    @property
    def short_name(self) -> str:
        return _SHORT_NAMES[self]


_SHORT_NAMES = {
    LegacyServiceType.RDS: "RDS",
    LegacyServiceType.ELASTICACHE: "ElastiCache",
    LegacyServiceType.EC2: "EC2",
    LegacyServiceType.OPENSEARCH: "OpenSearch",
    LegacyServiceType.ELASTICSEARCH: "Elasticsearch",
    LegacyServiceType.REDSHIFT: "Redshift",
    LegacyServiceType.MEMORYDB: "MemoryDB",
    LegacyServiceType.SAVINGS_PLANS: "Savings Plans",
    LegacyServiceType.NOSQL: "NoSQL",
    LegacyServiceType.STORAGE: "Storage",
}


@dataclass
class EC2Details:
    detail_type: ClassVar[str] = "ec2"
    platform: str = ""
    tenancy: str = ""
    scope: str = ""


@dataclass
class RDSDetails:
    detail_type: ClassVar[str] = "rds"
    engine: str = ""
    az_config: str = ""
    engine_version: str = ""
    deployment: str = ""


@dataclass
class ElastiCacheDetails:
    detail_type: ClassVar[str] = "elasticache"
    engine: str = ""
    node_type: str = ""
    shards: int = 0


@dataclass
class OpenSearchDetails:
    detail_type: ClassVar[str] = "opensearch"
    instance_type: str = ""
    instance_count: int = 0
    master_enabled: bool = False
    master_type: str = ""
    master_count: int = 0
    data_node_storage: int = 0


@dataclass
class RedshiftDetails:
    detail_type: ClassVar[str] = "redshift"
    node_type: str = ""
    number_of_nodes: int = 0
    cluster_type: str = ""


@dataclass
class MemoryDBDetails:
    detail_type: ClassVar[str] = "memorydb"
    node_type: str = ""
    number_of_nodes: int = 0
    shard_count: int = 0


@dataclass
class SavingsPlanDetails:
    detail_type: ClassVar[str] = "savingsplans"
    plan_type: str = ""
    hourly_commitment: float = 0.0
    coverage: float = 0.0


LegacyDetails = Union[
    EC2Details, RDSDetails, ElastiCacheDetails, OpenSearchDetails,
    RedshiftDetails, MemoryDBDetails, SavingsPlanDetails, NoDetails,
]

ONE_YEAR_SECONDS = 31536000
THREE_YEAR_SECONDS = 94608000


@dataclass
class InternalRecommendation:
    """Recommendation in the legacy layout"""

    service: LegacyServiceType
    region: str
    instance_type: str
    count: int
    payment_option: str
    term: int
    provider: str = "aws"
    commitment_type: str = "reserved-instance"
    account_id: str = ""
    account_name: str = ""
    estimated_cost: float = 0.0
    current_cost: float = 0.0
    estimated_savings: float = 0.0
    savings_percent: float = 0.0
    coverage: float = 0.0
    upfront_cost: float = 0.0
    recurring_monthly_cost: float = 0.0
    estimated_monthly_on_demand: float = 0.0
    service_details: LegacyDetails = NO_DETAILS
    source_recommendation: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def service_name(self) -> str:
        return self.service.short_name

    def duration_seconds(self) -> int:
        """Offering duration filter value for the term"""
        if self.term == 36:
            return THREE_YEAR_SECONDS
        return ONE_YEAR_SECONDS

    def description(self) -> str:
        describe = _DESCRIBERS.get(getattr(self.service_details, "detail_type", None))
        if describe is None:
            return f"{self.service_name()} {self.instance_type}"
        return describe(self, self.service_details)


_DESCRIBERS = {
    "rds": lambda rec, d: f"{d.engine} {rec.instance_type} {d.az_config}",
    "elasticache": lambda rec, d: f"{d.engine} {d.node_type}",
    "ec2": lambda rec, d: f"{rec.instance_type} {d.platform} {d.tenancy}",
    "opensearch": lambda rec, d: f"{d.instance_type} x{d.instance_count}",
    "redshift": lambda rec, d: f"{d.node_type} {d.number_of_nodes} nodes ({d.cluster_type})",
    "memorydb": lambda rec, d: f"{d.node_type} {d.number_of_nodes} nodes, {d.shard_count} shards",
    "savingsplans": lambda rec, d: f"{d.plan_type} ${d.hourly_commitment:.2f}/hour",
}


@dataclass
class InternalPurchaseResult:
    config: InternalRecommendation
    success: bool
    message: str
    purchase_id: str = ""
    reservation_id: str = ""
    actual_cost: float = 0.0
    currency: str = ""
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ExistingReservation:
    reservation_id: str
    service: LegacyServiceType
    instance_type: str
    region: str
    count: int
    state: str
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    term: int = 12
    engine: str = ""
    payment_option: str = ""
    account_id: str = ""
    provider: str = "aws"
    commitment_type: str = "reserved-instance"
    cost: float = 0.0


@dataclass
class InternalOfferingDetails:
    offering_id: str
    instance_type: str
    term: int
    payment_option: str
    upfront_cost: float
    recurring_cost: float
    total_cost: float
    effective_hourly_rate: float
    currency_code: str = "USD"
