from .exceptions import (
    CloudCommitError, EmptyResponseError, NotFoundError, PurchaseCancelledError, TransportError, ValidationError,
)
from .matching import OfferingResolver
from .purchase import PurchaseExecutor
from .batch import BatchPurchaseDriver
from .inventory import CommitmentInventoryReader
from .base.service import BaseServiceClient
from .base.provider import CloudProvider

__all__ = [
    'CloudCommitError', 'EmptyResponseError', 'NotFoundError', 'PurchaseCancelledError', 'TransportError',
    'ValidationError',
    'OfferingResolver', 'PurchaseExecutor', 'BatchPurchaseDriver', 'CommitmentInventoryReader',
    'BaseServiceClient', 'CloudProvider',
]
