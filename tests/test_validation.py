"""Tests for validation module"""

import json

import pytest
import yaml

from cloudcommit.core.base.models import (
    NO_DETAILS,
    CacheDetails,
    CommitmentType,
    PaymentOption,
    ProviderType,
    ServiceType,
    Term,
)
from cloudcommit.core.exceptions import ValidationError
from cloudcommit.core.validation import (
    RecommendationInput,
    Validator,
    load_recommendation_documents,
    parse_recommendation,
)


class TestValidator:
    """Test Validator class"""

    def test_validate_aws_account_id(self):
        """Test AWS account ID validation"""
        assert Validator.validate_aws_account_id("123456789012") == "123456789012"

        with pytest.raises(ValidationError):
            Validator.validate_aws_account_id("12345678901")  # Too short

        with pytest.raises(ValidationError):
            Validator.validate_aws_account_id("12345678901a")  # Contains letter

    def test_validate_aws_region(self):
        """Test AWS region validation"""
        assert Validator.validate_aws_region("us-east-1") == "us-east-1"
        assert Validator.validate_aws_region("us-gov-west-1") == "us-gov-west-1"

        with pytest.raises(ValidationError):
            Validator.validate_aws_region("us-east")

        with pytest.raises(ValidationError):
            Validator.validate_aws_region("eastus")

    def test_validate_azure_subscription(self):
        """Test Azure subscription ID validation"""
        sub = "0A1B2C3D-0000-1111-2222-333344445555"
        assert Validator.validate_azure_subscription(sub) == sub.lower()

        with pytest.raises(ValidationError):
            Validator.validate_azure_subscription("not-a-guid")

    def test_validate_gcp_project(self):
        """Test GCP project ID validation"""
        assert Validator.validate_gcp_project("my-project-123") == "my-project-123"

        with pytest.raises(ValidationError):
            Validator.validate_gcp_project("1project")

        with pytest.raises(ValidationError):
            Validator.validate_gcp_project("proj")

    def test_validate_term_months(self):
        assert Validator.validate_term_months("36") == 36
        assert Validator.validate_term_months(12) == 12

        with pytest.raises(ValidationError):
            Validator.validate_term_months(24)

        with pytest.raises(ValidationError):
            Validator.validate_term_months("one year")

    def test_validate_batch(self):
        """Test batch validation"""
        assert Validator.validate_batch(["111111111111", "222222222222"], Validator.validate_aws_account_id) == [
            "111111111111", "222222222222",
        ]

        with pytest.raises(ValidationError, match="Item 1"):
            Validator.validate_batch(["111111111111", "bad"], Validator.validate_aws_account_id)

        with pytest.raises(ValidationError, match="Validation failed at item 0"):
            Validator.validate_batch(["bad", "bad"], Validator.validate_aws_account_id, fail_fast=True)


class TestRecommendationInput:
    """Test RecommendationInput model"""

    def test_minimal(self):
        rec = RecommendationInput(service="rds", region="us-east-1", resource_type="db.r5.large").to_recommendation()

        assert rec.provider == ProviderType.AWS
        assert rec.service == ServiceType.RELATIONAL_DB
        assert rec.count == 1
        assert rec.term == Term.ONE_YEAR
        assert rec.payment_option == PaymentOption.ALL_UPFRONT
        assert rec.details is NO_DETAILS
        assert rec.source_recommendation == "file"

    def test_aliases_and_spellings(self):
        rec = parse_recommendation({
            "service": "elasticache",
            "region": "eu-west-1",
            "instance_type": "cache.r6g.large",
            "count": 3,
            "term": 36,
            "payment_type": "Partial Upfront",
            "account_id": "123456789012",
            "details": {"engine": "redis", "node_type": "cache.r6g.large"},
        })

        assert rec.resource_type == "cache.r6g.large"
        assert rec.term == Term.THREE_YEAR
        assert rec.payment_option == PaymentOption.PARTIAL_UPFRONT
        assert rec.account == "123456789012"
        assert rec.details == CacheDetails(engine="redis", node_type="cache.r6g.large")

    def test_savings_plan_commitment_type(self):
        rec = parse_recommendation({"service": "savings-plans", "region": "us-east-1", "resource_type": "Compute"})
        assert rec.commitment_type == CommitmentType.SAVINGS_PLAN

    @pytest.mark.parametrize("data", [
        {"service": "lambda", "region": "us-east-1", "resource_type": "x"},
        {"service": "ec2", "region": "us-east-1", "resource_type": "m5.large", "term": "2yr"},
        {"service": "ec2", "region": "us-east-1", "resource_type": "m5.large", "count": 0},
        {"service": "ec2", "region": "us-east-1", "resource_type": "m5.large", "payment_option": "sometimes"},
        {"service": "ec2", "region": "us-east-1"},
    ])
    def test_invalid(self, data):
        with pytest.raises(ValidationError):
            parse_recommendation(data)

    def test_unknown_detail_fields(self):
        with pytest.raises(ValidationError, match="Unknown compute detail fields: flavour"):
            parse_recommendation({
                "service": "ec2", "region": "us-east-1", "resource_type": "m5.large",
                "details": {"platform": "Linux/UNIX", "flavour": "vanilla"},
            })


class TestLoadDocuments:
    """Test JSON and YAML recommendation files"""

    def test_json_list(self, tmp_path):
        path = tmp_path / "recs.json"
        path.write_text(json.dumps([
            {"service": "redshift", "region": "us-east-1", "resource_type": "dc2.large", "count": 2},
            {"provider": "azure", "service": "vm", "region": "eastus", "resource_type": "Standard_D2s_v3"},
        ]))

        recs = load_recommendation_documents(path)

        assert [r.provider for r in recs] == [ProviderType.AWS, ProviderType.AZURE]
        assert recs[0].count == 2

    def test_yaml_mapping(self, tmp_path):
        path = tmp_path / "recs.yaml"
        path.write_text(yaml.safe_dump({"recommendations": [
            {"provider": "gcp", "service": "compute", "region": "us-central1", "resource_type": "n2-standard-4"},
        ]}))

        recs = load_recommendation_documents(path)
        assert recs[0].provider == ProviderType.GCP

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "recs.json"
        path.write_text(json.dumps({"recommendations": "none"}))
        with pytest.raises(ValidationError, match="does not contain a list"):
            load_recommendation_documents(path)

    def test_reports_every_bad_item(self, tmp_path):
        path = tmp_path / "recs.json"
        path.write_text(json.dumps([
            {"service": "lambda", "region": "us-east-1", "resource_type": "x"},
            {"service": "ec2", "region": "us-east-1", "resource_type": "m5.large"},
            {"service": "ec2", "region": "us-east-1", "resource_type": "m5.large", "count": -1},
        ]))
        with pytest.raises(ValidationError) as exc_info:
            load_recommendation_documents(path)

        assert "Item 0" in str(exc_info.value)
        assert "Item 2" in str(exc_info.value)
