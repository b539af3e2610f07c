"""Custom exceptions for cloudcommit"""

from typing import Optional


class CloudCommitError(Exception):
    """Base exception for all cloudcommit errors"""
    pass


class AuthenticationError(CloudCommitError):
    """Raised when authentication fails"""
    pass


class ConfigurationError(CloudCommitError):
    """Raised when configuration is invalid"""
    pass


class ValidationError(CloudCommitError):
    """Raised when input validation fails"""
    pass


class NotFoundError(CloudCommitError):
    """Raised when no offering or SKU matches a recommendation"""

    def __init__(self, message: str, resource_type: Optional[str] = None):
        self.resource_type = resource_type
        super().__init__(message)


class TransportError(CloudCommitError):
    """Raised when talking to a provider API fails"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class EmptyResponseError(CloudCommitError):
    """Raised when a provider accepted a purchase but returned no commitment"""

    def __init__(self, message: str = "purchase response was empty"):
        super().__init__(message)


class PurchaseCancelledError(CloudCommitError):
    """Raised when cancellation is observed before a purchase is submitted"""
    pass


class RateLimitError(CloudCommitError):
    """Raised when rate limit is exceeded"""
    pass

