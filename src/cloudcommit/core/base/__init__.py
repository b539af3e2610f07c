from .models import (
    NO_DETAILS, Account, CacheDetails, Commitment, CommitmentPage, CommitmentRecord, CommitmentState,
    CommitmentType, ComputeDetails, DatabaseDetails, DataWarehouseDetails, NoDetails, Offering,
    OfferingDetails, OfferingPage, PaymentOption, PriceQuote, ProviderType, PurchaseRecord, PurchaseResult,
    Recommendation, RecommendationParams, RecurringCharge, SavingsPlanDetails, SearchDetails, ServiceType, Term,
)

__all__ = [
    'NO_DETAILS', 'Account', 'CacheDetails', 'Commitment', 'CommitmentPage', 'CommitmentRecord', 'CommitmentState',
    'CommitmentType', 'ComputeDetails', 'DatabaseDetails', 'DataWarehouseDetails', 'NoDetails', 'Offering',
    'OfferingDetails', 'OfferingPage', 'PaymentOption', 'PriceQuote', 'ProviderType', 'PurchaseRecord',
    'PurchaseResult', 'Recommendation', 'RecommendationParams', 'RecurringCharge', 'SavingsPlanDetails',
    'SearchDetails', 'ServiceType', 'Term',
]
