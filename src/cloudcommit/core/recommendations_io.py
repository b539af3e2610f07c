"""Reading and writing recommendation and purchase result files.

CSV files use the legacy column layout (long AWS service names, terms in
months, ``instance_type``) and go through the schema translator; JSON and YAML
files use the current model via ``RecommendationInput``.

Detail fields that share a name with a recommendation column (``coverage``,
``instance_type``) are written under a ``detail_`` prefix.
"""

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pandas as pd

from . import legacy
from .base.models import NO_DETAILS, Commitment, PurchaseResult, Recommendation
from .exceptions import ValidationError
from .legacy import InternalRecommendation, LegacyServiceType
from .translator import (
    from_internal,
    legacy_service_from_name,
    to_internal,
    to_internal_commitment,
    to_internal_result,
)
from .validation import load_recommendation_documents

logger = logging.getLogger(__name__)

RECOMMENDATION_COLUMNS = [
    "provider", "service", "region", "instance_type", "count", "term", "payment_option",
    "commitment_type", "account_id", "account_name", "estimated_cost", "current_cost",
    "estimated_savings", "savings_percent", "coverage", "upfront_cost",
    "recurring_monthly_cost", "estimated_monthly_on_demand", "description",
]

_LEGACY_DETAILS = {
    LegacyServiceType.EC2: legacy.EC2Details,
    LegacyServiceType.RDS: legacy.RDSDetails,
    LegacyServiceType.ELASTICACHE: legacy.ElastiCacheDetails,
    LegacyServiceType.OPENSEARCH: legacy.OpenSearchDetails,
    LegacyServiceType.ELASTICSEARCH: legacy.OpenSearchDetails,
    LegacyServiceType.REDSHIFT: legacy.RedshiftDetails,
    LegacyServiceType.MEMORYDB: legacy.MemoryDBDetails,
    LegacyServiceType.SAVINGS_PLANS: legacy.SavingsPlanDetails,
}

DETAIL_COLUMN_PREFIX = "detail_"


def detail_column(name: str) -> str:
    """CSV column of a detail field; names shared with a recommendation column are prefixed"""
    if name in RECOMMENDATION_COLUMNS:
        return f"{DETAIL_COLUMN_PREFIX}{name}"
    return name


def _convert(value: str, target: Any) -> Any:
    if target is bool:
        return value.strip().lower() in ("true", "1", "yes")
    if target is int:
        return int(float(value))
    if target is float:
        return float(value)
    return value


def _details_from_row(service: LegacyServiceType, row: Dict[str, str]) -> Any:
    details_cls = _LEGACY_DETAILS.get(service)
    if details_cls is None:
        return NO_DETAILS
    values = {
        f.name: _convert(row[detail_column(f.name)], f.type)
        for f in dataclasses.fields(details_cls)
        if row.get(detail_column(f.name), "") != ""
    }
    if not values:
        return NO_DETAILS
    return details_cls(**values)


def _float(row: Dict[str, str], column: str) -> float:
    value = row.get(column, "")
    return float(value) if value != "" else 0.0


def internal_from_row(row: Dict[str, str]) -> InternalRecommendation:
    """Build a legacy recommendation from one CSV row"""
    for column in ("service", "region", "instance_type"):
        if not row.get(column):
            raise ValidationError(f"Missing required column value: {column}")

    service = legacy_service_from_name(row["service"])
    try:
        count = int(float(row.get("count") or 1))
        term = int(float(row.get("term") or 12))
    except ValueError as e:
        raise ValidationError(f"Invalid numeric value in row for {row['instance_type']}: {e}")

    return InternalRecommendation(
        service=service,
        region=row["region"],
        instance_type=row["instance_type"],
        count=count,
        payment_option=row.get("payment_option") or "all-upfront",
        term=term,
        provider=row.get("provider") or "aws",
        commitment_type=row.get("commitment_type") or "reserved-instance",
        account_id=row.get("account_id", ""),
        account_name=row.get("account_name", ""),
        estimated_cost=_float(row, "estimated_cost"),
        current_cost=_float(row, "current_cost"),
        estimated_savings=_float(row, "estimated_savings"),
        savings_percent=_float(row, "savings_percent"),
        coverage=_float(row, "coverage"),
        upfront_cost=_float(row, "upfront_cost"),
        recurring_monthly_cost=_float(row, "recurring_monthly_cost"),
        estimated_monthly_on_demand=_float(row, "estimated_monthly_on_demand"),
        service_details=_details_from_row(service, row),
        source_recommendation="csv",
    )


def internal_to_row(internal: InternalRecommendation) -> Dict[str, Any]:
    row = {
        "provider": internal.provider,
        "service": internal.service.value,
        "region": internal.region,
        "instance_type": internal.instance_type,
        "count": internal.count,
        "term": internal.term,
        "payment_option": internal.payment_option,
        "commitment_type": internal.commitment_type,
        "account_id": internal.account_id,
        "account_name": internal.account_name,
        "estimated_cost": internal.estimated_cost,
        "current_cost": internal.current_cost,
        "estimated_savings": internal.estimated_savings,
        "savings_percent": internal.savings_percent,
        "coverage": internal.coverage,
        "upfront_cost": internal.upfront_cost,
        "recurring_monthly_cost": internal.recurring_monthly_cost,
        "estimated_monthly_on_demand": internal.estimated_monthly_on_demand,
        "description": internal.description(),
    }
    if dataclasses.is_dataclass(internal.service_details) and dataclasses.fields(internal.service_details):
        for name, value in dataclasses.asdict(internal.service_details).items():
            row[detail_column(name)] = value
    return row


def read_recommendations_csv(path: Path) -> List[Recommendation]:
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    recommendations = []
    for index, row in enumerate(df.to_dict(orient="records")):
        try:
            recommendations.append(from_internal(internal_from_row(row)))
        except ValidationError as e:
            raise ValidationError(f"{path}, row {index + 1}: {e}")
    logger.info(f"Loaded {len(recommendations)} recommendations from {path}")
    return recommendations


def write_recommendations_csv(recommendations: Sequence[Recommendation], path: Path) -> None:
    rows = [internal_to_row(to_internal(rec)) for rec in recommendations]
    df = pd.DataFrame(rows)
    df = df.reindex(columns=RECOMMENDATION_COLUMNS + [c for c in df.columns if c not in RECOMMENDATION_COLUMNS])
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)


def load_recommendations(path: Path) -> List[Recommendation]:
    """Load recommendations from CSV, JSON or YAML by file extension"""
    if path.suffix.lower() == ".csv":
        return read_recommendations_csv(path)
    return load_recommendation_documents(path)


def write_recommendations_json(recommendations: Sequence[Recommendation], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump([rec.to_dict() for rec in recommendations], f, indent=2)


def write_results_csv(results: Sequence[PurchaseResult], path: Path) -> None:
    rows = []
    for result in results:
        internal = to_internal_result(result)
        row = internal_to_row(internal.config)
        row.update({
            "success": internal.success,
            "message": internal.message,
            "purchase_id": internal.purchase_id,
            "reservation_id": internal.reservation_id,
            "actual_cost": internal.actual_cost,
            "currency": internal.currency,
            "timestamp": internal.timestamp.isoformat(),
        })
        rows.append(row)
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows).to_csv(path, index=False)


def write_commitments_csv(commitments: Sequence[Commitment], path: Path) -> None:
    rows = []
    for commitment in commitments:
        reservation = to_internal_commitment(commitment)
        row = dataclasses.asdict(reservation)
        row["service"] = reservation.service.value
        rows.append(row)
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows).to_csv(path, index=False)
