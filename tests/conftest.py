"""Pytest configuration and fixtures"""

import pytest
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from unittest.mock import MagicMock
import yaml

import cloudcommit.core.config as config_module
from cloudcommit.core.base.models import (
    CommitmentPage,
    CommitmentRecord,
    Offering,
    OfferingPage,
    PaymentOption,
    ProviderType,
    PurchaseRecord,
    Recommendation,
    ServiceType,
    Term,
)
from cloudcommit.core.base.service import BaseServiceClient
from cloudcommit.core.matching import ONE_YEAR_SECONDS, THREE_YEAR_SECONDS

_DEFAULT = object()


class FakeServiceClient(BaseServiceClient):
    """In-memory catalog, purchase endpoint and commitment listing.

    ``pages`` and ``commitment_pages`` are lists of pages; a page that is an
    exception instance is raised when fetched.
    """

    service_type = ServiceType.DATA_WAREHOUSE
    service_label = "Redshift"
    purchase_unit = "nodes"

    def __init__(self, pages=None, purchase_response=_DEFAULT, purchase_error=None,
                 commitment_pages=None, region="us-east-1", on_submit=None):
        super().__init__(region, account="123456789012")
        self.pages = pages if pages is not None else [[]]
        self.purchase_response = purchase_response
        self.purchase_error = purchase_error
        self.commitment_pages = commitment_pages if commitment_pages is not None else [[]]
        self.on_submit = on_submit
        self.page_requests: List[Optional[str]] = []
        self.purchases = []

    def fetch_offerings_page(self, recommendation, page_token=None):
        self.page_requests.append(page_token)
        index = int(page_token) if page_token else 0
        page = self.pages[index]
        if isinstance(page, Exception):
            raise page
        next_token = str(index + 1) if index + 1 < len(self.pages) else None
        return OfferingPage(list(page), next_token)

    def submit_purchase(self, offering, quantity, recommendation, cancel_event=None):
        self.purchases.append((offering, quantity))
        if self.on_submit is not None:
            self.on_submit(offering, quantity, recommendation)
        if self.purchase_error is not None:
            raise self.purchase_error
        if self.purchase_response is _DEFAULT:
            return PurchaseRecord(commitment_id=f"rn-{len(self.purchases)}", offering_id=offering.offering_id)
        return self.purchase_response

    def fetch_commitments_page(self, page_token=None):
        index = int(page_token) if page_token else 0
        page = self.commitment_pages[index]
        if isinstance(page, Exception):
            raise page
        next_token = str(index + 1) if index + 1 < len(self.commitment_pages) else None
        return CommitmentPage(list(page), next_token)


@pytest.fixture(autouse=True)
def reset_settings():
    """Each test starts without a cached settings instance"""
    config_module.settings = None
    yield
    config_module.settings = None


@pytest.fixture
def make_recommendation():
    """Factory for recommendations with sensible defaults"""
    def factory(**overrides):
        values = {
            "provider": ProviderType.AWS,
            "service": ServiceType.DATA_WAREHOUSE,
            "region": "us-east-1",
            "resource_type": "dc2.large",
            "count": 2,
            "term": Term.ONE_YEAR,
            "payment_option": PaymentOption.ALL_UPFRONT,
            "account": "123456789012",
            "timestamp": datetime(2024, 3, 1, 12, 0, 0),
        }
        values.update(overrides)
        return Recommendation(**values)
    return factory


@pytest.fixture
def make_offering():
    def factory(offering_id="off-1", resource_type="dc2.large", duration_seconds=ONE_YEAR_SECONDS,
                offering_type="Regular", fixed_price=1000.0, **kwargs):
        return Offering(
            offering_id=offering_id,
            resource_type=resource_type,
            duration_seconds=duration_seconds,
            offering_type=offering_type,
            fixed_price=fixed_price,
            **kwargs,
        )
    return factory


@pytest.fixture
def make_record():
    def factory(commitment_id="rn-1", resource_type="dc2.large", count=1, state="active",
                start_date=datetime(2024, 1, 15), duration_seconds=ONE_YEAR_SECONDS, **kwargs):
        return CommitmentRecord(
            commitment_id=commitment_id,
            resource_type=resource_type,
            count=count,
            state=state,
            start_date=start_date,
            duration_seconds=duration_seconds,
            **kwargs,
        )
    return factory


@pytest.fixture
def fake_client_cls():
    return FakeServiceClient


@pytest.fixture
def redshift_catalog(make_offering):
    """Two catalog pages; dc2.large 1yr Regular is on the second"""
    return [
        [
            make_offering("off-ra3", resource_type="ra3.xlplus", fixed_price=3000.0),
            make_offering("off-dc2-3yr", duration_seconds=THREE_YEAR_SECONDS, fixed_price=2500.0),
        ],
        [
            make_offering("off-dc2", fixed_price=1000.0),
            make_offering("off-dc2-upg", offering_type="Upgradable", fixed_price=1200.0),
        ],
    ]


@pytest.fixture
def mock_boto_client():
    """boto3-shaped client; operations are MagicMock attributes"""
    return MagicMock()


@pytest.fixture
def temp_config_file():
    """Create temporary config file"""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        config = {
            "environment": "test",
            "aws": {
                "enabled": True,
                "profile": "test-profile",
                "regions": ["us-east-1"],
            },
            "purchase": {
                "delay_seconds": 0,
                "dry_run": True,
                "default_term": "3yr",
            },
            "retry": {
                "max_retries": 2,
                "jitter": False,
            },
        }
        yaml.dump(config, f)
        temp_path = Path(f.name)

    yield temp_path

    # Cleanup
    temp_path.unlink(missing_ok=True)
