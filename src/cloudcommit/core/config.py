"""Configuration management for cloudcommit"""

import json
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .base.models import PaymentOption, Term
from .exceptions import ValidationError

logger = logging.getLogger(__name__)


class CloudProviderConfig(BaseModel):
    """Configuration for a cloud provider"""
    enabled: bool = True
    regions: List[str] = Field(default_factory=list)
    timeout: int = 30


class AWSConfig(CloudProviderConfig):
    """AWS-specific configuration"""
    profile: Optional[str] = None
    default_region: str = "us-east-1"
    role_arn: Optional[str] = None
    external_id: Optional[str] = None
    max_attempts: int = 5


class AzureConfig(CloudProviderConfig):
    """Azure-specific configuration"""
    enabled: bool = False
    subscription_id: Optional[str] = None
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[SecretStr] = None
    default_region: str = "eastus"


class GCPConfig(CloudProviderConfig):
    """GCP-specific configuration"""
    enabled: bool = False
    project_id: Optional[str] = None
    credentials_path: Optional[Path] = None
    default_region: str = "us-central1"


class PurchaseConfig(BaseModel):
    """Purchase pacing and safety settings"""
    delay_seconds: float = Field(default=5.0, ge=0)
    dry_run: bool = True
    skip_duplicates: bool = True
    duplicate_lookback_hours: int = Field(default=24, ge=0)
    default_term: str = "1yr"
    default_payment_option: str = "all-upfront"

    @field_validator("default_term")
    @classmethod
    def validate_term(cls, value: str) -> str:
        try:
            return Term.parse(value).value
        except ValidationError as e:
            raise ValueError(str(e))

    @field_validator("default_payment_option")
    @classmethod
    def validate_payment_option(cls, value: str) -> str:
        try:
            return PaymentOption.parse(value).value
        except ValidationError as e:
            raise ValueError(str(e))


class RetryConfig(BaseModel):
    """Backoff settings for rate-limited API calls"""
    base_delay: float = 1.0
    max_delay: float = 30.0
    max_retries: int = 5
    jitter: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[Path] = None
    audit_file: Optional[Path] = None
    console: bool = True
    structured: bool = False


class Settings(BaseSettings):
    """Main application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CLOUDCOMMIT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "cloudcommit"
    environment: str = "development"
    debug: bool = False

    aws: AWSConfig = Field(default_factory=AWSConfig)
    azure: AzureConfig = Field(default_factory=AzureConfig)
    gcp: GCPConfig = Field(default_factory=GCPConfig)

    purchase: PurchaseConfig = Field(default_factory=PurchaseConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file"""
        if not path.exists():
            logger.warning(f"Configuration file {path} not found, using defaults")
            return cls()

        with open(path, "r") as f:
            data = yaml.safe_load(f)

        return cls(**data if data else {})

    @classmethod
    def from_json(cls, path: Path) -> "Settings":
        """Load settings from JSON file"""
        if not path.exists():
            logger.warning(f"Configuration file {path} not found, using defaults")
            return cls()

        with open(path, "r") as f:
            data = json.load(f)

        return cls(**data)

    @classmethod
    def from_file(cls, path: Path) -> "Settings":
        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        return cls.from_json(path)

    def to_yaml(self, path: Path) -> None:
        """Save settings to YAML file"""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(self.model_dump(mode="json", exclude_unset=True), f, default_flow_style=False)

    def get_enabled_providers(self) -> List[str]:
        """Get list of enabled providers"""
        providers = []
        if self.aws.enabled:
            providers.append("aws")
        if self.azure.enabled:
            providers.append("azure")
        if self.gcp.enabled:
            providers.append("gcp")
        return providers


# Global settings instance
settings: Optional[Settings] = None

DEFAULT_CONFIG_PATHS = [
    Path.home() / ".cloudcommit" / "config.yaml",
    Path.home() / ".cloudcommit" / "config.json",
    Path("./cloudcommit.yaml"),
    Path("./cloudcommit.json"),
]


def get_settings() -> Settings:
    """Get global settings instance"""
    global settings
    if settings is None:
        for path in DEFAULT_CONFIG_PATHS:
            if path.exists():
                settings = Settings.from_file(path)
                logger.info(f"Loaded configuration from {path}")
                break
        else:
            settings = Settings()
            logger.info("Using default configuration")

    return settings


def reload_settings(path: Optional[Path] = None) -> Settings:
    """Reload settings from file"""
    global settings

    if path:
        settings = Settings.from_file(path)
    else:
        settings = None
        settings = get_settings()

    return settings
