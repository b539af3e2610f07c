"""Tests for Cost Explorer recommendations"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from cloudcommit.core.base.models import (
    CacheDetails,
    CommitmentType,
    DatabaseDetails,
    DataWarehouseDetails,
    PaymentOption,
    RecommendationParams,
    SavingsPlanDetails,
    ServiceType,
    Term,
)
from cloudcommit.core.exceptions import TransportError, ValidationError
from cloudcommit.core.ratelimit import RetryPolicy
from cloudcommit.providers.aws.recommendations import (
    CostExplorerRecommendations,
    lookback_period,
    normalize_region,
)

pytestmark = pytest.mark.aws


def throttled():
    return ClientError({"Error": {"Code": "ThrottlingException", "Message": "Rate exceeded"}},
                       "GetReservationPurchaseRecommendation")


def rds_detail(account="111111111111", region="US East (N. Virginia)", quantity="2"):
    return {
        "AccountId": account,
        "RecommendedNumberOfInstancesToPurchase": quantity,
        "EstimatedMonthlyOnDemandCost": "500.0",
        "EstimatedMonthlySavingsAmount": "120.5",
        "EstimatedMonthlySavingsPercentage": "24.1",
        "UpfrontCost": "3000",
        "RecurringStandardMonthlyCost": "0",
        "AverageUtilization": "87.5",
        "InstanceDetails": {
            "RDSInstanceDetails": {
                "InstanceType": "db.r5.large",
                "Region": region,
                "DatabaseEngine": "PostgreSQL",
                "DeploymentOption": "Multi-AZ",
            }
        },
    }


@pytest.fixture
def ce_client():
    return MagicMock()


@pytest.fixture
def advisor(ce_client):
    return CostExplorerRecommendations(ce_client, RetryPolicy(jitter=False, sleep=MagicMock()))


class TestHelpers:
    def test_normalize_region(self):
        assert normalize_region("EU (Ireland)") == "eu-west-1"
        assert normalize_region("us-west-2") == "us-west-2"

    def test_lookback_period(self):
        assert lookback_period(30) == "THIRTY_DAYS"
        assert lookback_period(45) == "SEVEN_DAYS"


class TestReservationRecommendations:
    """Test reserved instance recommendations"""

    def test_parses_rds(self, advisor, ce_client):
        ce_client.get_reservation_purchase_recommendation.return_value = {
            "Recommendations": [{"RecommendationDetails": [rds_detail()]}],
        }
        params = RecommendationParams(service=ServiceType.RELATIONAL_DB, term=Term.THREE_YEAR,
                                      payment_option=PaymentOption.PARTIAL_UPFRONT, lookback_days=30)

        recs = advisor.get_recommendations(params)

        assert len(recs) == 1
        rec = recs[0]
        assert rec.resource_type == "db.r5.large"
        assert rec.region == "us-east-1"
        assert rec.count == 2
        assert rec.account == "111111111111"
        assert rec.term == Term.THREE_YEAR
        assert rec.estimated_savings == 120.5
        assert rec.details == DatabaseDetails(
            engine="PostgreSQL", az_config="multi-az", instance_class="db.r5.large", deployment="Multi-AZ",
        )
        ce_client.get_reservation_purchase_recommendation.assert_called_once_with(
            Service="Amazon Relational Database Service",
            AccountScope="LINKED",
            LookbackPeriodInDays="THIRTY_DAYS",
            TermInYears="THREE_YEARS",
            PaymentOption="PARTIAL_UPFRONT",
        )

    def test_pages(self, advisor, ce_client):
        ce_client.get_reservation_purchase_recommendation.side_effect = [
            {"Recommendations": [{"RecommendationDetails": [rds_detail()]}], "NextPageToken": "p2"},
            {"Recommendations": [{"RecommendationDetails": [rds_detail(account="222222222222")]}]},
        ]
        recs = advisor.get_recommendations(RecommendationParams(service=ServiceType.RELATIONAL_DB))

        assert [r.account for r in recs] == ["111111111111", "222222222222"]
        assert ce_client.get_reservation_purchase_recommendation.call_args.kwargs["NextPageToken"] == "p2"

    def test_cache_queries_elasticache_and_memorydb(self, advisor, ce_client):
        ce_client.get_reservation_purchase_recommendation.side_effect = [
            {"Recommendations": [{"RecommendationDetails": [{
                "RecommendedNumberOfInstancesToPurchase": "1",
                "InstanceDetails": {"ElastiCacheInstanceDetails": {
                    "NodeType": "cache.r6g.large", "Region": "us-east-1", "ProductDescription": "redis",
                }},
            }]}]},
            {"Recommendations": [{"RecommendationDetails": [{
                "RecommendedNumberOfInstancesToPurchase": "3",
                "InstanceDetails": {"MemoryDBInstanceDetails": {"NodeType": "db.r6g.large", "Region": "us-east-1"}},
            }]}]},
        ]

        recs = advisor.get_recommendations(RecommendationParams(service=ServiceType.CACHE))

        assert [r.details for r in recs] == [
            CacheDetails(engine="redis", node_type="cache.r6g.large"),
            CacheDetails(engine="memorydb", node_type="db.r6g.large"),
        ]
        services = [c.kwargs["Service"] for c in ce_client.get_reservation_purchase_recommendation.call_args_list]
        assert services == ["Amazon ElastiCache", "Amazon MemoryDB Service"]

    def test_redshift_cluster_type(self, advisor, ce_client):
        ce_client.get_reservation_purchase_recommendation.return_value = {
            "Recommendations": [{"RecommendationDetails": [{
                "RecommendedNumberOfInstancesToPurchase": "1",
                "InstanceDetails": {"RedshiftInstanceDetails": {"NodeType": "ra3.xlplus", "Region": "us-east-1"}},
            }]}],
        }
        recs = advisor.get_recommendations(RecommendationParams(service=ServiceType.DATA_WAREHOUSE))
        assert recs[0].details == DataWarehouseDetails(node_type="ra3.xlplus", number_of_nodes=1,
                                                       cluster_type="single-node")

    def test_opensearch_instance_type(self, advisor, ce_client):
        ce_client.get_reservation_purchase_recommendation.return_value = {
            "Recommendations": [{"RecommendationDetails": [{
                "RecommendedNumberOfInstancesToPurchase": "3",
                "InstanceDetails": {"ESInstanceDetails": {
                    "InstanceClass": "r6g", "InstanceSize": "large.search", "Region": "eu-west-1",
                }},
            }]}],
        }
        recs = advisor.get_recommendations(RecommendationParams(service=ServiceType.SEARCH))
        assert recs[0].resource_type == "r6g.large.search"
        assert recs[0].details.instance_count == 3

    def test_skips_unparseable_details(self, advisor, ce_client):
        ce_client.get_reservation_purchase_recommendation.return_value = {
            "Recommendations": [{"RecommendationDetails": [
                rds_detail(quantity=None),
                rds_detail(quantity="lots"),
                {"RecommendedNumberOfInstancesToPurchase": "1", "InstanceDetails": {}},
                rds_detail(),
            ]}],
        }
        recs = advisor.get_recommendations(RecommendationParams(service=ServiceType.RELATIONAL_DB))
        assert len(recs) == 1

    def test_filters_regions_and_accounts(self, advisor, ce_client):
        ce_client.get_reservation_purchase_recommendation.return_value = {
            "Recommendations": [{"RecommendationDetails": [
                rds_detail(),
                rds_detail(region="EU (Ireland)"),
                rds_detail(account="999999999999"),
            ]}],
        }
        params = RecommendationParams(service=ServiceType.RELATIONAL_DB, exclude_regions=["eu-west-1"],
                                      account_ids=["111111111111"])

        recs = advisor.get_recommendations(params)

        assert len(recs) == 1
        assert recs[0].region == "us-east-1"

    def test_unsupported_service(self, advisor):
        with pytest.raises(ValidationError):
            advisor.get_recommendations(RecommendationParams(service=ServiceType.NOSQL))

    def test_retries_throttling(self, advisor, ce_client):
        ce_client.get_reservation_purchase_recommendation.side_effect = [
            throttled(),
            {"Recommendations": [{"RecommendationDetails": [rds_detail()]}]},
        ]
        recs = advisor.get_recommendations(RecommendationParams(service=ServiceType.RELATIONAL_DB))

        assert len(recs) == 1
        assert ce_client.get_reservation_purchase_recommendation.call_count == 2

    def test_other_errors_are_wrapped(self, advisor, ce_client):
        ce_client.get_reservation_purchase_recommendation.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "GetReservationPurchaseRecommendation",
        )
        with pytest.raises(TransportError, match="get_reservation_purchase_recommendation failed"):
            advisor.get_recommendations(RecommendationParams(service=ServiceType.RELATIONAL_DB))
        assert ce_client.get_reservation_purchase_recommendation.call_count == 1


class TestSavingsPlansRecommendations:
    """Test Savings Plans recommendations"""

    def test_parses_plans(self, advisor, ce_client):
        def respond(SavingsPlansType, **kwargs):
            if SavingsPlansType != "COMPUTE_SP":
                return {"SavingsPlansPurchaseRecommendation": {}}
            return {"SavingsPlansPurchaseRecommendation": {"SavingsPlansPurchaseRecommendationDetails": [{
                "AccountId": "111111111111",
                "HourlyCommitmentToPurchase": "2.5",
                "EstimatedSavingsPercentage": "18",
                "EstimatedMonthlySavingsAmount": "300",
                "CurrentAverageHourlyOnDemandSpend": "10",
                "UpfrontCost": "0",
            }]}}

        ce_client.get_savings_plans_purchase_recommendation.side_effect = respond

        recs = advisor.get_recommendations(RecommendationParams(service=ServiceType.SAVINGS_PLANS))

        assert len(recs) == 1
        rec = recs[0]
        assert rec.resource_type == "Compute"
        assert rec.commitment_type == CommitmentType.SAVINGS_PLAN
        assert rec.on_demand_cost == 7300.0
        assert rec.details == SavingsPlanDetails(plan_type="Compute", hourly_commitment=2.5, coverage=18.0)
        assert ce_client.get_savings_plans_purchase_recommendation.call_count == 4

    def test_failed_plan_type_is_skipped(self, advisor, ce_client):
        ce_client.get_savings_plans_purchase_recommendation.side_effect = ClientError(
            {"Error": {"Code": "DataUnavailableException", "Message": "no data"}},
            "GetSavingsPlansPurchaseRecommendation",
        )
        assert advisor.get_recommendations(RecommendationParams(service=ServiceType.SAVINGS_PLANS)) == []
