import threading
from typing import Optional

from ...core.base.models import (
    CommitmentPage,
    CommitmentRecord,
    DatabaseDetails,
    Offering,
    OfferingPage,
    PurchaseRecord,
    Recommendation,
    ServiceType,
)
from .base import AWSServiceClient, duration_for, offering_type_for, parse_charges, reservation_id


def normalize_engine(engine: str) -> str:
    """Map an engine name onto the product description the RDS catalog expects"""
    engine = engine.lower()
    if "aurora" in engine:
        return "aurora-postgresql" if "postgres" in engine else "aurora-mysql"
    if "mysql" in engine:
        return "mysql"
    if "postgres" in engine:
        return "postgresql"
    if "mariadb" in engine:
        return "mariadb"
    if "oracle" in engine:
        return "oracle-se2"
    if "sqlserver" in engine or "sql-server" in engine or "sql server" in engine:
        return "sqlserver-se"
    return engine


class RDSClient(AWSServiceClient):
    """Reserved DB instances"""

    service_type = ServiceType.RELATIONAL_DB
    service_label = "RDS"
    valid_resource_types = (
        "db.t3.micro", "db.t3.small", "db.t3.medium", "db.t3.large",
        "db.t4g.micro", "db.t4g.small", "db.t4g.medium", "db.t4g.large",
        "db.m5.large", "db.m5.xlarge", "db.m5.2xlarge", "db.m5.4xlarge",
        "db.m6g.large", "db.m6g.xlarge", "db.m6g.2xlarge", "db.m6i.large",
        "db.r5.large", "db.r5.xlarge", "db.r5.2xlarge", "db.r5.4xlarge",
        "db.r6g.large", "db.r6g.xlarge", "db.r6g.2xlarge", "db.r6i.large",
    )

    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        params = {
            "DBInstanceClass": recommendation.resource_type,
            "Duration": str(duration_for(recommendation.term)),
            "OfferingType": offering_type_for(recommendation.payment_option),
            "MaxRecords": 100,
        }
        details = recommendation.details
        if isinstance(details, DatabaseDetails):
            if details.engine:
                params["ProductDescription"] = normalize_engine(details.engine)
            params["MultiAZ"] = details.multi_az
        if page_token:
            params["Marker"] = page_token

        response = self.call("describe_reserved_db_instances_offerings", **params)
        offerings = [
            Offering(
                offering_id=item["ReservedDBInstancesOfferingId"],
                resource_type=item.get("DBInstanceClass", ""),
                duration_seconds=item.get("Duration"),
                offering_type=item.get("OfferingType", ""),
                fixed_price=item.get("FixedPrice"),
                usage_price=item.get("UsagePrice", 0.0),
                currency=item.get("CurrencyCode") or "USD",
                recurring_charges=parse_charges(item.get("RecurringCharges")),
                payment_option=item.get("OfferingType"),
                attributes={
                    "product_description": item.get("ProductDescription", ""),
                    "multi_az": item.get("MultiAZ", False),
                },
            )
            for item in response.get("ReservedDBInstancesOfferings", [])
        ]
        return OfferingPage(offerings, response.get("Marker"))

    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        response = self.call(
            "purchase_reserved_db_instances_offering",
            ReservedDBInstancesOfferingId=offering.offering_id,
            ReservedDBInstanceId=reservation_id("rds", recommendation.resource_type),
            DBInstanceCount=quantity,
            Tags=[
                {"Key": "Purpose", "Value": "Reserved Instance Purchase"},
                {"Key": "ResourceType", "Value": recommendation.resource_type},
                {"Key": "Tool", "Value": "cloudcommit"},
            ],
        )
        reserved = response.get("ReservedDBInstance")
        if not reserved:
            return None
        return PurchaseRecord(
            commitment_id=reserved.get("ReservedDBInstanceId", ""),
            offering_id=reserved.get("ReservedDBInstancesOfferingId", ""),
            fixed_price=reserved.get("FixedPrice"),
            recurring_charges=parse_charges(reserved.get("RecurringCharges")),
            duration_seconds=reserved.get("Duration"),
            currency=reserved.get("CurrencyCode", ""),
            state=reserved.get("State", ""),
            raw=reserved,
        )

    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        params = {"MaxRecords": 100}
        if page_token:
            params["Marker"] = page_token
        response = self.call("describe_reserved_db_instances", **params)
        records = [
            CommitmentRecord(
                commitment_id=item.get("ReservedDBInstanceId", ""),
                resource_type=item.get("DBInstanceClass", ""),
                count=item.get("DBInstanceCount", 0),
                state=item.get("State", ""),
                start_date=item.get("StartTime"),
                duration_seconds=item.get("Duration"),
                engine=item.get("ProductDescription", ""),
                payment_option=item.get("OfferingType", ""),
                cost=item.get("FixedPrice") or 0.0,
            )
            for item in response.get("ReservedDBInstances", [])
        ]
        return CommitmentPage(records, response.get("Marker"))
