"""Offering resolution: map a recommendation to one purchasable catalog entry"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Collection, Iterator, Optional

from .base.models import Offering, OfferingPage, Recommendation, Term
from .exceptions import NotFoundError, PurchaseCancelledError

logger = logging.getLogger(__name__)

SECONDS_PER_MONTH = 2592000  # 30 days
ONE_YEAR_SECONDS = 31536000
THREE_YEAR_SECONDS = 94608000

# Commercial structures accepted when an adapter does not declare its own
DEFAULT_RESOLVABLE_TYPES = ("Regular", "Upgradable")


def duration_to_months(duration_seconds: Optional[int]) -> Optional[int]:
    """Whole 30-day months in a duration, None when the duration is absent"""
    if duration_seconds is None:
        return None
    return int(duration_seconds) // SECONDS_PER_MONTH


def matches_duration(duration_seconds: Optional[int], term: Term) -> bool:
    months = duration_to_months(duration_seconds)
    return months is not None and months == term.months


def matches_offering_type(offering_type: str, resolvable_types: Collection[str]) -> bool:
    # Payment option is not inspected here; any resolvable structure matches.
    return offering_type in resolvable_types


def term_from_duration(duration_seconds: Optional[int]) -> Term:
    """Infer a term from a listed duration.

    Only an exact three-year duration reads as 3yr; everything else, including
    durations that are close to but not exactly three years, reads as 1yr.
    """
    if duration_seconds is not None and int(duration_seconds) == THREE_YEAR_SECONDS:
        return Term.THREE_YEAR
    return Term.ONE_YEAR


class OfferingCatalog(ABC):
    """Paginated view of a provider's offering catalog"""

    @abstractmethod
    def fetch_offerings_page(self, recommendation: Recommendation,
                             page_token: Optional[str] = None) -> OfferingPage:
        """Fetch one catalog page narrowed for the recommendation"""
        pass

    def resolvable_offering_types(self, recommendation: Recommendation) -> Collection[str]:
        """Commercial structures that may satisfy the recommendation"""
        return DEFAULT_RESOLVABLE_TYPES


class OfferingResolver:
    """Select the offering that satisfies a recommendation"""

    def __init__(self, catalog: OfferingCatalog):
        self.catalog = catalog

    def iter_offerings(self, recommendation: Recommendation,
                       cancel_event: Optional[threading.Event] = None) -> Iterator[Offering]:
        """Yield catalog offerings page by page, in catalog order"""
        page_token = None
        seen_tokens = set()

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise PurchaseCancelledError("offering lookup cancelled")

            page = self.catalog.fetch_offerings_page(recommendation, page_token)
            for offering in page.offerings:
                yield offering

            page_token = page.next_token
            if not page_token:
                break
            if page_token in seen_tokens:
                logger.warning(f"Catalog returned repeated page token {page_token}, stopping")
                break
            seen_tokens.add(page_token)

    def matches(self, offering: Offering, recommendation: Recommendation,
                resolvable_types: Collection[str]) -> bool:
        return (
            offering.resource_type == recommendation.resource_type
            and matches_duration(offering.duration_seconds, recommendation.term)
            and matches_offering_type(offering.offering_type, resolvable_types)
        )

    def resolve(self, recommendation: Recommendation,
                cancel_event: Optional[threading.Event] = None) -> Offering:
        """Return the first matching offering.

        Raises:
            NotFoundError: if no offering in the catalog matches
        """
        resolvable_types = self.catalog.resolvable_offering_types(recommendation)
        scanned = 0

        for offering in self.iter_offerings(recommendation, cancel_event):
            scanned += 1
            if self.matches(offering, recommendation, resolvable_types):
                logger.debug(
                    f"Resolved {recommendation.resource_type} to offering {offering.offering_id} "
                    f"after {scanned} candidates"
                )
                return offering

        logger.debug(f"No match for {recommendation.resource_type} among {scanned} offerings")
        raise NotFoundError(
            f"no offerings found for {recommendation.resource_type}",
            resource_type=recommendation.resource_type,
        )
