from .client import AzureProvider
from .pricing import RetailPricesClient
from .recommendations import ConsumptionRecommendations
from .reservations import (
    AzureComputeClient,
    AzureCosmosDBClient,
    AzureRedisClient,
    AzureReservationClient,
    AzureSearchClient,
    AzureSQLClient,
)
from .rest import AzureRestClient

__all__ = [
    "AzureComputeClient",
    "AzureCosmosDBClient",
    "AzureProvider",
    "AzureRedisClient",
    "AzureReservationClient",
    "AzureRestClient",
    "AzureSearchClient",
    "AzureSQLClient",
    "ConsumptionRecommendations",
    "RetailPricesClient",
]
