"""Base class binding the purchase engine onto one provider service"""

import logging
import threading
from abc import abstractmethod
from typing import List, Optional, Sequence

from ..batch import BatchPurchaseDriver
from ..inventory import CommitmentInventoryReader, CommitmentSource
from ..matching import OfferingResolver
from ..pricing import PricingLookup, offering_details_from_offering, offering_details_from_quote
from ..purchase import PurchaseBackend, PurchaseExecutor
from .models import (
    Commitment,
    CommitmentPage,
    Offering,
    OfferingDetails,
    OfferingPage,
    ProviderType,
    PurchaseRecord,
    PurchaseResult,
    Recommendation,
    RecommendationParams,
)


class BaseServiceClient(PurchaseBackend, CommitmentSource):
    """Abstract base class for per-service commitment clients.

    Subclasses implement the three provider hooks (catalog page, purchase
    submission, commitment page); resolution, execution, batching and
    inventory normalization are shared.
    """

    provider: ProviderType = ProviderType.AWS
    # Static fallback when the provider offers no resource type listing
    valid_resource_types: Sequence[str] = ()

    def __init__(self, region: str, account: str = "", pricing: Optional[PricingLookup] = None):
        self.region = region
        self.account = account
        self.pricing = pricing
        self.logger = logging.getLogger(self.__class__.__name__)
        self.resolver = OfferingResolver(self)
        self.executor = PurchaseExecutor(self, self.resolver)
        self.inventory = CommitmentInventoryReader(self)

    @abstractmethod
    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        """Fetch one catalog page narrowed for the recommendation"""
        pass

    @abstractmethod
    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        """Purchase an offering"""
        pass

    @abstractmethod
    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        """Fetch one page of existing commitments"""
        pass

    def get_recommendations(self, params: RecommendationParams) -> List[Recommendation]:
        """Recommendations for this service; advisors are provider-level by default"""
        return []

    def purchase(self, recommendation: Recommendation,
                 cancel_event: Optional[threading.Event] = None) -> PurchaseResult:
        return self.executor.purchase(recommendation, cancel_event)

    def batch_purchase(self, recommendations: Sequence[Recommendation], delay: float = 0.0,
                       cancel_event: Optional[threading.Event] = None) -> List[PurchaseResult]:
        return BatchPurchaseDriver(self.executor).purchase_all(recommendations, delay, cancel_event)

    def list_commitments(self, cancel_event: Optional[threading.Event] = None) -> List[Commitment]:
        return self.inventory.list_active(cancel_event)

    def validate_offering(self, recommendation: Recommendation) -> Offering:
        """Resolve the offering for a recommendation.

        Raises:
            NotFoundError: if the catalog has no matching offering
        """
        return self.resolver.resolve(recommendation)

    def get_offering_details(self, recommendation: Recommendation) -> OfferingDetails:
        offering = self.resolver.resolve(recommendation)
        if self.pricing is not None:
            quote = self.pricing.get_price(recommendation.resource_type, recommendation.region, recommendation.term)
            return offering_details_from_quote(
                offering.offering_id, offering.resource_type, quote,
                recommendation.term, recommendation.payment_option,
            )
        return offering_details_from_offering(offering, recommendation.term, recommendation.payment_option)

    def list_valid_resource_types(self) -> List[str]:
        return list(self.valid_resource_types)
