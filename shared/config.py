"""
Shared configuration management for the Vault Access Layer.
"""

from enum import Enum
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Execution environment a service is running in."""

    LOCAL = "local"
    DEVELOPMENT = "development"
    TEST = "test"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "Environment":
        """Map an environment name onto an Environment, defaulting to production."""
        if not value or not value.strip():
            return cls.PRODUCTION

        normalized = value.strip().lower()
        aliases = {"dev": cls.DEVELOPMENT, "prod": cls.PRODUCTION, "stage": cls.STAGING}
        if normalized in aliases:
            return aliases[normalized]

        try:
            return cls(normalized)
        except ValueError:
            return cls.PRODUCTION


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="VAULT_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Downstream HTTP service
    service_url: Optional[str] = Field(default=None)
    service_address: Optional[str] = Field(default=None)
    http_timeout_seconds: float = Field(default=10.0)

    # Key Vault
    key_vault_url: Optional[str] = Field(default=None)
    key_vault_api_version: str = Field(default="7.5")
    certificate_thumbprint: Optional[str] = Field(default=None)

    # Secret client retry, applied by azure-core
    secret_retry_total: int = Field(default=1)
    secret_retry_backoff_factor: float = Field(default=1.0)
    secret_retry_backoff_max: float = Field(default=1.0)

    @property
    def environment(self) -> Environment:
        return Environment.from_value(self.env)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)
