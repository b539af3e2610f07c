"""Input validation for recommendation files and identifiers"""

import dataclasses
import json
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .base.models import (
    DETAILS_BY_SERVICE,
    NO_DETAILS,
    CommitmentType,
    PaymentOption,
    ProviderType,
    Recommendation,
    ServiceType,
    Term,
)
from .exceptions import ValidationError as CustomValidationError


class Validator:
    """Central validation utility"""

    PATTERNS = {
        'aws_account_id': re.compile(r'^\d{12}$'),
        'aws_region': re.compile(r'^[a-z]{2}(-gov|-iso[a-z]?)?-[a-z]+-\d$'),
        'azure_subscription': re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$'),
        'gcp_project': re.compile(r'^[a-z][a-z0-9-]{4,28}[a-z0-9]$'),
    }

    @classmethod
    def validate_aws_account_id(cls, account_id: str) -> str:
        """Validate AWS account ID"""
        if not cls.PATTERNS['aws_account_id'].match(account_id):
            raise CustomValidationError(f"Invalid AWS account ID: {account_id}")
        return account_id

    @classmethod
    def validate_aws_region(cls, region: str) -> str:
        """Validate AWS region"""
        if not cls.PATTERNS['aws_region'].match(region):
            raise CustomValidationError(f"Invalid AWS region: {region}")
        return region

    @classmethod
    def validate_azure_subscription(cls, subscription_id: str) -> str:
        """Validate Azure subscription ID"""
        if not cls.PATTERNS['azure_subscription'].match(subscription_id.lower()):
            raise CustomValidationError(f"Invalid Azure subscription ID: {subscription_id}")
        return subscription_id.lower()

    @classmethod
    def validate_gcp_project(cls, project_id: str) -> str:
        """Validate GCP project ID"""
        if not cls.PATTERNS['gcp_project'].match(project_id):
            raise CustomValidationError(f"Invalid GCP project ID: {project_id}")
        return project_id

    @classmethod
    def validate_term_months(cls, months: Union[int, str]) -> int:
        """Validate a term given in months"""
        try:
            value = int(months)
        except (TypeError, ValueError):
            raise CustomValidationError(f"Invalid term: {months}")
        return Term.from_months(value).months

    @classmethod
    def validate_batch(cls, items: List[Any], validator: Callable[[Any], Any],
                       fail_fast: bool = False) -> List[Any]:
        """Validate a batch of items"""
        validated = []
        errors = []

        for i, item in enumerate(items):
            try:
                validated.append(validator(item))
            except (CustomValidationError, PydanticValidationError) as e:
                if fail_fast:
                    raise CustomValidationError(f"Validation failed at item {i}: {e}")
                errors.append(f"Item {i}: {e}")

        if errors:
            raise CustomValidationError(f"Batch validation failed: {'; '.join(errors)}")

        return validated


def _parse_with(parser: Callable[[Any], Any], value: Any) -> str:
    try:
        return parser(value).value
    except CustomValidationError as e:
        raise ValueError(str(e))


class RequestValidator(BaseModel):
    """Base model for request validation"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True, extra="ignore")


class RecommendationInput(RequestValidator):
    """One recommendation as written in a JSON or YAML file"""
    provider: str = "aws"
    service: str
    region: str
    resource_type: str = Field(validation_alias=AliasChoices("resource_type", "instance_type"))
    count: int = Field(default=1, ge=1)
    term: Union[str, int] = "1yr"
    payment_option: str = Field(
        default="all-upfront", validation_alias=AliasChoices("payment_option", "payment_type"),
    )
    commitment_type: str = "reserved-instance"
    account: str = Field(default="", validation_alias=AliasChoices("account", "account_id"))
    account_name: str = ""
    on_demand_cost: float = 0.0
    commitment_cost: float = 0.0
    estimated_savings: float = 0.0
    savings_percentage: float = 0.0
    upfront_cost: float = 0.0
    recurring_monthly_cost: float = 0.0
    coverage: float = 0.0
    details: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, value: str) -> str:
        return _parse_with(ProviderType.parse, value)

    @field_validator("service")
    @classmethod
    def validate_service(cls, value: str) -> str:
        return _parse_with(ServiceType.parse, value)

    @field_validator("term")
    @classmethod
    def validate_term(cls, value: Union[str, int]) -> str:
        return _parse_with(Term.parse, value)

    @field_validator("payment_option")
    @classmethod
    def validate_payment_option(cls, value: str) -> str:
        return _parse_with(PaymentOption.parse, value)

    @field_validator("commitment_type")
    @classmethod
    def validate_commitment_type(cls, value: str) -> str:
        try:
            return CommitmentType(value.lower()).value
        except ValueError:
            raise ValueError(f"Unsupported commitment type: {value}")

    def build_details(self, service: ServiceType) -> Any:
        details_cls = DETAILS_BY_SERVICE.get(service)
        if details_cls is None or not self.details:
            return NO_DETAILS
        known = {f.name for f in dataclasses.fields(details_cls)}
        unknown = set(self.details) - known
        if unknown:
            raise CustomValidationError(
                f"Unknown {service.value} detail fields: {', '.join(sorted(unknown))}"
            )
        return details_cls(**self.details)

    def to_recommendation(self) -> Recommendation:
        service = ServiceType(self.service)
        commitment_type = CommitmentType(self.commitment_type)
        if service == ServiceType.SAVINGS_PLANS and commitment_type == CommitmentType.RESERVED_INSTANCE:
            commitment_type = CommitmentType.SAVINGS_PLAN

        return Recommendation(
            provider=ProviderType(self.provider),
            service=service,
            region=self.region,
            resource_type=self.resource_type,
            count=self.count,
            term=Term(self.term),
            payment_option=PaymentOption(self.payment_option),
            commitment_type=commitment_type,
            account=self.account,
            account_name=self.account_name,
            on_demand_cost=self.on_demand_cost,
            commitment_cost=self.commitment_cost,
            estimated_savings=self.estimated_savings,
            savings_percentage=self.savings_percentage,
            upfront_cost=self.upfront_cost,
            recurring_monthly_cost=self.recurring_monthly_cost,
            coverage=self.coverage,
            details=self.build_details(service),
            source_recommendation="file",
        )


def parse_recommendation(data: Dict[str, Any]) -> Recommendation:
    try:
        return RecommendationInput(**data).to_recommendation()
    except PydanticValidationError as e:
        raise CustomValidationError(f"Invalid recommendation: {e}")


def load_recommendation_documents(path: Path) -> List[Recommendation]:
    """Load recommendations from a JSON or YAML document.

    The document is either a list of recommendations or a mapping with a
    ``recommendations`` key.
    """
    with open(path, "r") as f:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if isinstance(data, dict):
        data = data.get("recommendations", [])
    if not isinstance(data, list):
        raise CustomValidationError(f"{path} does not contain a list of recommendations")

    return Validator.validate_batch(data, parse_recommendation)
