"""Listing of existing commitments"""

import calendar
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional

from .base.models import (
    Commitment,
    CommitmentPage,
    CommitmentRecord,
    CommitmentState,
    CommitmentType,
    PaymentOption,
    ProviderType,
    ServiceType,
    Term,
)
from .exceptions import CloudCommitError, PurchaseCancelledError, ValidationError
from .matching import term_from_duration

logger = logging.getLogger(__name__)

SURFACED_STATES: FrozenSet[CommitmentState] = frozenset(
    {CommitmentState.ACTIVE, CommitmentState.PAYMENT_PENDING}
)


def add_term(start: datetime, term: Term) -> datetime:
    """Add a term's whole years to a start date; Feb 29 clamps to Feb 28"""
    year = start.year + term.years
    day = min(start.day, calendar.monthrange(year, start.month)[1])
    return start.replace(year=year, day=day)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept SDK datetimes as-is and parse ISO-8601 strings (trailing Z allowed)"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class CommitmentSource(ABC):
    """Paginated view of a provider's commitment listing"""

    provider: ProviderType = ProviderType.AWS
    service_type: ServiceType = ServiceType.COMPUTE
    commitment_type: CommitmentType = CommitmentType.RESERVED_INSTANCE
    # When True, a failed page after the first keeps what was already listed
    best_effort_listing: bool = False
    state_map: Dict[str, CommitmentState] = {}

    region: str = ""
    account: str = ""

    @abstractmethod
    def fetch_commitments_page(self, page_token: Optional[str] = None) -> CommitmentPage:
        """Fetch one page of commitments"""
        pass

    def normalize_state(self, raw_state: str) -> CommitmentState:
        mapped = self.state_map.get(raw_state) or self.state_map.get(str(raw_state).lower())
        if mapped is not None:
            return mapped
        return CommitmentState.parse(raw_state)


class CommitmentInventoryReader:
    """Collect active and payment-pending commitments across all pages"""

    def __init__(self, source: CommitmentSource, include_states: FrozenSet[CommitmentState] = SURFACED_STATES):
        self.source = source
        self.include_states = include_states

    def iter_records(self, cancel_event: Optional[threading.Event] = None):
        page_token = None
        seen_tokens = set()
        pages = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise PurchaseCancelledError("commitment listing cancelled")

            try:
                page = self.source.fetch_commitments_page(page_token)
            except CloudCommitError as e:
                if self.source.best_effort_listing and pages > 0:
                    logger.warning(f"Stopping commitment listing after {pages} pages: {e}")
                    return
                raise

            pages += 1
            for record in page.records:
                yield record

            page_token = page.next_token
            if not page_token or page_token in seen_tokens:
                return
            seen_tokens.add(page_token)

    def normalize(self, record: CommitmentRecord) -> Commitment:
        term = term_from_duration(record.duration_seconds)
        end_date = add_term(record.start_date, term) if record.start_date else None

        payment_option = None
        if record.payment_option:
            try:
                payment_option = PaymentOption.parse(record.payment_option)
            except ValidationError:
                logger.debug(f"Unrecognized payment option {record.payment_option!r} on {record.commitment_id}")

        return Commitment(
            provider=self.source.provider,
            account=record.account or self.source.account,
            commitment_id=record.commitment_id,
            commitment_type=self.source.commitment_type,
            service=self.source.service_type,
            region=record.region or self.source.region,
            resource_type=record.resource_type,
            count=record.count,
            start_date=record.start_date,
            end_date=end_date,
            state=self.source.normalize_state(record.state),
            term=term,
            cost=record.cost,
            engine=record.engine,
            payment_option=payment_option,
        )

    def list_active(self, cancel_event: Optional[threading.Event] = None) -> List[Commitment]:
        commitments = []
        dropped = 0

        for record in self.iter_records(cancel_event):
            commitment = self.normalize(record)
            if commitment.state in self.include_states:
                commitments.append(commitment)
            else:
                dropped += 1

        logger.debug(f"Listed {len(commitments)} commitments, dropped {dropped} in other states")
        return commitments
