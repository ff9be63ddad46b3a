"""
Secret and key retrieval service.
"""

import threading
from typing import Optional

from azure.core.pipeline.policies import RetryMode
from azure.identity import DefaultAzureCredential
from azure.identity.aio import DefaultAzureCredential as AsyncDefaultAzureCredential
from azure.keyvault.keys import KeyClient, KeyVaultKey
from azure.keyvault.keys.aio import KeyClient as AsyncKeyClient
from azure.keyvault.secrets import KeyVaultSecret, SecretClient
from azure.keyvault.secrets.aio import SecretClient as AsyncSecretClient

from shared.configuration import Configuration
from shared.errors import InvalidArgumentError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..adapters.key_fetcher import KeyFetcher, resolve_api_version
from ..adapters.secret_fetcher import SecretFetcher
from ..cache.named_resource_cache import NamedResourceCache


DEFAULT_RETRY_TOTAL = 1
DEFAULT_RETRY_DELAY_SECONDS = 1.0


class KeyVaultService:
    """Retrieves secrets and keys from Key Vault, caching each by name."""

    def __init__(
        self,
        configuration: Configuration,
        secret_fetcher: Optional[SecretFetcher] = None,
        key_fetcher: Optional[KeyFetcher] = None,
        *,
        secret_cache: Optional[NamedResourceCache[KeyVaultSecret]] = None,
        key_cache: Optional[NamedResourceCache[KeyVaultKey]] = None,
        credential=None,
        async_credential=None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.logger = get_logger("vault.key_vault_service")
        self._async_credential = None

        try:
            if configuration is None:
                raise InvalidArgumentError("configuration")
            self.configuration = configuration

            if secret_fetcher is None or key_fetcher is None:
                credential = credential or DefaultAzureCredential()
                if async_credential is None:
                    async_credential = self._async_credential = AsyncDefaultAzureCredential()

            self.secret_fetcher = secret_fetcher or self._build_secret_fetcher(credential, async_credential)
            self.key_fetcher = key_fetcher or self._build_key_fetcher(credential, async_credential)

            self.secret_cache = secret_cache if secret_cache is not None else NamedResourceCache(
                "secret", argument_name="secret_name", metrics=metrics
            )
            self.key_cache = key_cache if key_cache is not None else NamedResourceCache(
                "key", argument_name="key_name", metrics=metrics
            )
        except Exception as e:
            self.logger.error("Key Vault service initialization failed", error=str(e))
            raise

    def _build_secret_fetcher(self, credential, async_credential) -> SecretFetcher:
        vault_url = self.configuration.get_required_value("KeyVault:Uri")
        retry_kwargs = {
            "retry_total": self._int_setting("KeyVault:Retry:Total", DEFAULT_RETRY_TOTAL),
            "retry_backoff_factor": self._float_setting("KeyVault:Retry:BackoffFactor", DEFAULT_RETRY_DELAY_SECONDS),
            "retry_backoff_max": self._float_setting("KeyVault:Retry:BackoffMax", DEFAULT_RETRY_DELAY_SECONDS),
            "retry_mode": RetryMode.Exponential,
        }
        return SecretFetcher(
            SecretClient(vault_url=vault_url, credential=credential, **retry_kwargs),
            AsyncSecretClient(vault_url=vault_url, credential=async_credential, **retry_kwargs),
        )

    def _build_key_fetcher(self, credential, async_credential) -> KeyFetcher:
        vault_url = self.configuration.get_required_value("KeyVault:Uri")
        api_version = resolve_api_version(self.configuration.get_value("KeyVaultClientApiVersion"))
        return KeyFetcher(
            KeyClient(vault_url=vault_url, credential=credential, api_version=api_version),
            AsyncKeyClient(vault_url=vault_url, credential=async_credential, api_version=api_version),
        )

    def _int_setting(self, key: str, default: int) -> int:
        value = self.configuration.get_int_value(key)
        return default if value is None else value

    def _float_setting(self, key: str, default: float) -> float:
        value = self.configuration.get_value(key)
        try:
            return float(value) if value else default
        except ValueError:
            return default

    def get_secret(
        self,
        secret_name: str,
        version: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> KeyVaultSecret:
        """Return the secret stored under ``secret_name``."""
        return self.secret_cache.get(secret_name, version, fetch=self.secret_fetcher.fetch, cancel_event=cancel_event)

    async def get_secret_async(self, secret_name: str, version: Optional[str] = None) -> KeyVaultSecret:
        return await self.secret_cache.get_async(secret_name, version, fetch=self.secret_fetcher.fetch_async)

    def get_key(
        self,
        key_name: str,
        version: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> KeyVaultKey:
        """Return the key stored under ``key_name``."""
        return self.key_cache.get(key_name, version, fetch=self.key_fetcher.fetch, cancel_event=cancel_event)

    async def get_key_async(self, key_name: str, version: Optional[str] = None) -> KeyVaultKey:
        return await self.key_cache.get_async(key_name, version, fetch=self.key_fetcher.fetch_async)

    async def close(self) -> None:
        """Close the vault clients and the credential the service created."""
        await self.secret_fetcher.close()
        await self.key_fetcher.close()
        if self._async_credential is not None:
            await self._async_credential.close()
