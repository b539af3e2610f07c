from .client import AWSProvider
from .ec2 import EC2Client
from .elasticache import ElastiCacheClient
from .memorydb import MemoryDBClient
from .opensearch import OpenSearchClient
from .rds import RDSClient
from .recommendations import CostExplorerRecommendations
from .redshift import RedshiftClient
from .savingsplans import SavingsPlansClient

__all__ = [
    "AWSProvider",
    "CostExplorerRecommendations",
    "EC2Client",
    "ElastiCacheClient",
    "MemoryDBClient",
    "OpenSearchClient",
    "RDSClient",
    "RedshiftClient",
    "SavingsPlansClient",
]
