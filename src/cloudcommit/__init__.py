"""Commitment matching and purchase orchestration for AWS, Azure and GCP"""

__version__ = "0.1.0"
