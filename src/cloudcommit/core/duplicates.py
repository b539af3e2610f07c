"""Duplicate purchase prevention against recently purchased commitments"""

import dataclasses
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from .base.models import Commitment, Recommendation, details_tag
from .inventory import SURFACED_STATES

logger = logging.getLogger(__name__)


def _naive(value: datetime) -> datetime:
    """Convert an aware timestamp to naive local time"""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def recommendation_engine(rec: Recommendation) -> str:
    return getattr(rec.details, "engine", "") if details_tag(rec.details) is not None else ""


class DuplicateChecker:
    """Reduce recommendation counts by commitments bought in the lookback window"""

    def __init__(self, lookback_hours: int = 24):
        self.lookback_hours = lookback_hours

    def recent(self, commitments: Sequence[Commitment], now: Optional[datetime] = None) -> List[Commitment]:
        cutoff = _naive(now or datetime.now()) - timedelta(hours=self.lookback_hours)
        recent = []
        for commitment in commitments:
            if commitment.state not in SURFACED_STATES or commitment.start_date is None:
                continue
            if _naive(commitment.start_date) > cutoff:
                recent.append(commitment)
        return recent

    def is_match(self, rec: Recommendation, commitment: Commitment) -> bool:
        if rec.service != commitment.service:
            return False
        if rec.resource_type.lower() != commitment.resource_type.lower():
            return False
        if rec.region.lower() != commitment.region.lower():
            return False

        engine = recommendation_engine(rec)
        if engine and commitment.engine and engine.lower() != commitment.engine.lower():
            return False

        if commitment.payment_option is not None and commitment.payment_option != rec.payment_option:
            return False

        return rec.term == commitment.term

    def adjust(self, recommendations: Sequence[Recommendation], commitments: Sequence[Commitment],
               now: Optional[datetime] = None) -> List[Recommendation]:
        """Return recommendations with recent purchases subtracted; zero counts are dropped"""
        recent = self.recent(commitments, now)
        adjusted = []

        for rec in recommendations:
            existing = sum(c.count for c in recent if self.is_match(rec, c))
            if existing == 0:
                adjusted.append(rec)
                continue

            remaining = max(rec.count - existing, 0)
            logger.info(
                f"Adjusting {rec.service.value} {rec.resource_type} in {rec.region}: "
                f"{rec.count} recommended - {existing} existing = {remaining} to purchase"
            )
            if remaining > 0:
                adjusted.append(dataclasses.replace(rec, count=remaining))

        if recent:
            logger.info(
                f"Found {len(recent)} commitments purchased in the last {self.lookback_hours} hours; "
                f"{len(recommendations)} recommendations adjusted to {len(adjusted)}"
            )
        return adjusted
