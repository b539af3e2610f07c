"""Sequential, paced purchasing of a list of recommendations"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .base.models import PurchaseResult, Recommendation
from .purchase import PurchaseExecutor

logger = logging.getLogger(__name__)

UNATTEMPTED_MESSAGE = "Purchase cancelled: batch stopped before this item was attempted"


@dataclass
class BatchSummary:
    total: int
    successful: int
    failed: int
    total_cost: float

    @property
    def success_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.successful / self.total * 100


def summarize(results: Sequence[PurchaseResult]) -> BatchSummary:
    successful = [r for r in results if r.success]
    return BatchSummary(
        total=len(results),
        successful=len(successful),
        failed=len(results) - len(successful),
        total_cost=sum(r.cost for r in successful),
    )


class BatchPurchaseDriver:
    """Run the purchase executor over recommendations one at a time.

    Exactly one result is returned per input, in input order. A fixed delay
    separates consecutive attempts. When the cancel event is set, no further
    purchases are issued and the remaining items get a cancellation failure.
    """

    def __init__(self, executor: PurchaseExecutor, sleep: Optional[Callable[[float], None]] = None):
        self.executor = executor
        self._sleep = sleep or time.sleep

    def _pause(self, delay: float, cancel_event: Optional[threading.Event]) -> bool:
        """Wait between purchases, returning True if cancelled meanwhile"""
        if delay <= 0:
            return cancel_event is not None and cancel_event.is_set()
        if cancel_event is not None:
            return cancel_event.wait(delay)
        self._sleep(delay)
        return False

    def purchase_all(self, recommendations: Sequence[Recommendation], delay: float = 0.0,
                     cancel_event: Optional[threading.Event] = None) -> List[PurchaseResult]:
        results: List[PurchaseResult] = []
        total = len(recommendations)

        for index, rec in enumerate(recommendations):
            if cancel_event is not None and cancel_event.is_set():
                break

            logger.info(f"Purchasing {index + 1}/{total}: {rec.describe()}")
            results.append(self.executor.purchase(rec, cancel_event))

            if index < total - 1 and self._pause(delay, cancel_event):
                logger.warning(f"Batch cancelled after {len(results)} of {total} purchases")
                break

        for rec in recommendations[len(results):]:
            results.append(PurchaseResult.failed(rec, UNATTEMPTED_MESSAGE))

        summary = summarize(results)
        logger.info(
            f"Batch complete: {summary.successful} succeeded, {summary.failed} failed, "
            f"total cost ${summary.total_cost:,.2f}"
        )
        return results
