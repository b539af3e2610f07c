"""Purchase execution: resolve, submit and classify one purchase attempt"""

import logging
import threading
from abc import abstractmethod
from typing import Optional

from .base.models import (
    Offering,
    PurchaseRecord,
    PurchaseResult,
    Recommendation,
    ServiceType,
    details_match,
    details_tag,
)
from .exceptions import CloudCommitError, EmptyResponseError, PurchaseCancelledError
from .logging import get_audit_logger
from .matching import OfferingCatalog, OfferingResolver

CANCELLED_MESSAGE = "Purchase cancelled before submission"


class PurchaseBackend(OfferingCatalog):
    """Provider capabilities the executor drives"""

    service_type: ServiceType = ServiceType.COMPUTE
    service_label: str = ""
    purchase_unit: str = "instances"
    requires_details: bool = False

    @abstractmethod
    def submit_purchase(self, offering: Offering, quantity: int,
                        recommendation: Recommendation,
                        cancel_event: Optional[threading.Event] = None) -> Optional[PurchaseRecord]:
        """Submit a purchase and return the commitment, or None when the
        provider accepted the call without returning one.

        Backends that wait between attempts must stop when ``cancel_event``
        is set and raise PurchaseCancelledError.
        """
        pass


def realized_cost(record: PurchaseRecord, offering: Offering) -> float:
    """Fixed price when present, otherwise hourly recurring charges over the term"""
    fixed = record.fixed_price if record.fixed_price is not None else offering.fixed_price
    if fixed:
        return float(fixed)

    charges = record.recurring_charges or offering.recurring_charges
    hourly = sum(c.amount for c in charges if c.frequency.lower() == "hourly")
    duration = record.duration_seconds or offering.duration_seconds or 0
    return hourly * duration / 3600


class PurchaseExecutor:
    """Linear purchase state machine.

    Every outcome is returned as a PurchaseResult; nothing is raised to the
    caller and no step is retried.
    """

    def __init__(self, backend: PurchaseBackend, resolver: Optional[OfferingResolver] = None):
        self.backend = backend
        self.resolver = resolver or OfferingResolver(backend)
        self.logger = logging.getLogger(__name__)

    @property
    def label(self) -> str:
        return self.backend.service_label or self.backend.service_type.value

    def purchase(self, recommendation: Recommendation,
                 cancel_event: Optional[threading.Event] = None) -> PurchaseResult:
        result = self._execute(recommendation, cancel_event)
        if result.success:
            self.logger.info(f"{result.message} ({recommendation.resource_type}, {result.commitment_id})")
        else:
            self.logger.warning(f"Purchase of {recommendation.describe()} failed: {result.message}")
        get_audit_logger().log_purchase(result)
        return result

    def _execute(self, rec: Recommendation,
                 cancel_event: Optional[threading.Event]) -> PurchaseResult:
        if rec.service != self.backend.service_type:
            return PurchaseResult.failed(rec, f"Invalid service type for {self.label} purchase")
        if rec.count <= 0:
            return PurchaseResult.failed(rec, f"Invalid purchase count: {rec.count}")

        try:
            offering = self.resolver.resolve(rec, cancel_event)
        except PurchaseCancelledError:
            return PurchaseResult.failed(rec, CANCELLED_MESSAGE)
        except CloudCommitError as e:
            return PurchaseResult.failed(rec, f"Failed to find offering: {e}")
        except Exception as e:
            self.logger.exception(f"Unexpected error resolving {rec.resource_type}")
            return PurchaseResult.failed(rec, f"Failed to find offering: {e}")

        if not details_match(rec.service, rec.details) or (
                self.backend.requires_details and details_tag(rec.details) is None):
            return PurchaseResult.failed(rec, f"Invalid service details for {self.label}")

        if cancel_event is not None and cancel_event.is_set():
            return PurchaseResult.failed(rec, CANCELLED_MESSAGE)

        try:
            record = self.backend.submit_purchase(offering, rec.count, rec, cancel_event=cancel_event)
        except PurchaseCancelledError:
            return PurchaseResult.failed(rec, CANCELLED_MESSAGE)
        except EmptyResponseError as e:
            return PurchaseResult.failed(rec, str(e))
        except CloudCommitError as e:
            return PurchaseResult.failed(rec, f"Failed to purchase: {e}")
        except Exception as e:
            self.logger.exception(f"Unexpected error purchasing offering {offering.offering_id}")
            return PurchaseResult.failed(rec, f"Failed to purchase: {e}")

        if record is None or not record.commitment_id:
            return PurchaseResult.failed(rec, str(EmptyResponseError()))

        return PurchaseResult.succeeded(
            recommendation=rec,
            commitment_id=record.commitment_id,
            offering_id=record.offering_id or offering.offering_id,
            cost=realized_cost(record, offering),
            message=f"Successfully purchased {rec.count} {self.backend.purchase_unit}",
            currency=record.currency or offering.currency,
        )
