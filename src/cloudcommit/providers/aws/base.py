"""Shared plumbing for boto3-backed service clients"""

import re
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from ...core.base.models import PaymentOption, ProviderType, RecurringCharge, Term
from ...core.base.service import BaseServiceClient
from ...core.exceptions import TransportError
from ...core.matching import ONE_YEAR_SECONDS, THREE_YEAR_SECONDS
from ...core.pricing import PricingLookup

# Offering type strings used by the RDS, ElastiCache, MemoryDB and EC2 catalogs
OFFERING_TYPES = {
    PaymentOption.ALL_UPFRONT: "All Upfront",
    PaymentOption.PARTIAL_UPFRONT: "Partial Upfront",
    PaymentOption.NO_UPFRONT: "No Upfront",
}

MAX_RESERVATION_ID = 63

THROTTLING_CODES = frozenset({
    "Throttling", "ThrottlingException", "TooManyRequestsException",
    "RequestLimitExceeded", "LimitExceededException",
})


def duration_for(term: Term) -> int:
    return THREE_YEAR_SECONDS if term == Term.THREE_YEAR else ONE_YEAR_SECONDS


def offering_type_for(payment_option: PaymentOption) -> str:
    return OFFERING_TYPES[payment_option]


def reservation_id(prefix: str, resource_type: str = "") -> str:
    """Build a reservation identifier, unique per call.

    Letters, digits and hyphens only (dots become hyphens), at most 63
    characters, ending in the purchase time and a random suffix.
    """
    suffix = f"{datetime.now():%Y%m%d%H%M%S}-{uuid.uuid4().hex[:8]}"
    base = re.sub(r"[^a-zA-Z0-9.-]", "", f"{prefix}-{resource_type}").replace(".", "-")
    base = re.sub(r"-+", "-", base).strip("-") or "reserved"
    return f"{base[:MAX_RESERVATION_ID - len(suffix) - 1].rstrip('-')}-{suffix}"


def error_code(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


def is_throttling(error: Exception) -> bool:
    cause = getattr(error, "cause", None) or error
    return error_code(cause) in THROTTLING_CODES


def parse_charges(charges: Optional[Iterable[Dict[str, Any]]]) -> Tuple[RecurringCharge, ...]:
    """Convert boto3 RecurringCharges lists into model charges"""
    parsed = []
    for charge in charges or []:
        amount = charge.get("RecurringChargeAmount")
        if amount is None:
            continue
        parsed.append(RecurringCharge(
            amount=float(amount),
            frequency=charge.get("RecurringChargeFrequency") or "Hourly",
        ))
    return tuple(parsed)


class AWSServiceClient(BaseServiceClient):
    """Base class for AWS commitment clients wrapping one boto3 client"""

    provider = ProviderType.AWS

    def __init__(self, client: Any, region: str, account: str = "",
                 pricing: Optional[PricingLookup] = None):
        super().__init__(region, account, pricing)
        self.client = client

    def call(self, operation: str, **kwargs) -> Dict[str, Any]:
        """Invoke a boto3 operation, wrapping SDK failures into TransportError"""
        self.logger.debug(f"{operation} in {self.region}")
        try:
            return getattr(self.client, operation)(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"{operation} failed", e)

    def resolvable_offering_types(self, recommendation):
        # The commercial structure of these catalogs is the payment option
        return (offering_type_for(recommendation.payment_option),)
