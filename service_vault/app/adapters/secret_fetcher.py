"""
Secret fetcher backed by the Key Vault secret client.
"""

from typing import Optional

from azure.core.exceptions import ResourceNotFoundError
from azure.keyvault.secrets import KeyVaultSecret, SecretClient
from azure.keyvault.secrets.aio import SecretClient as AsyncSecretClient

from .fetch_result import FetchResult, require_client


class SecretFetcher:
    """Fetches secrets by name and optional version."""

    def __init__(
        self,
        client: Optional[SecretClient] = None,
        async_client: Optional[AsyncSecretClient] = None,
    ):
        self.client = client
        self.async_client = async_client

    def fetch(self, name: str, version: Optional[str] = None) -> FetchResult[KeyVaultSecret]:
        client = require_client(self.client, "secret_client")
        try:
            secret = client.get_secret(name, version=version)
        except ResourceNotFoundError as e:
            return FetchResult.from_not_found(e)
        return FetchResult.found(secret) if secret is not None else FetchResult.missing(None, None)

    async def fetch_async(self, name: str, version: Optional[str] = None) -> FetchResult[KeyVaultSecret]:
        client = require_client(self.async_client, "async_secret_client")
        try:
            secret = await client.get_secret(name, version=version)
        except ResourceNotFoundError as e:
            return FetchResult.from_not_found(e)
        return FetchResult.found(secret) if secret is not None else FetchResult.missing(None, None)

    async def close(self) -> None:
        """Close the underlying clients and their transports."""
        if self.client is not None:
            self.client.close()
        if self.async_client is not None:
            await self.async_client.close()
