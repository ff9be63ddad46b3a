"""
Key fetcher backed by the Key Vault key client.
"""

from typing import Optional

from azure.core.exceptions import ResourceNotFoundError
from azure.keyvault.keys import ApiVersion, KeyClient, KeyVaultKey
from azure.keyvault.keys.aio import KeyClient as AsyncKeyClient

from .fetch_result import FetchResult, require_client


DEFAULT_KEY_API_VERSION = ApiVersion.V7_5


def resolve_api_version(value: Optional[str]) -> ApiVersion:
    """Map ``7.5`` or ``V7_5`` onto an ApiVersion, falling back to 7.5."""
    if value and value.strip():
        candidate = value.strip()
        for member in ApiVersion:
            if member.value.lower() == candidate.lower() or member.name.lower() == candidate.lower():
                return member
    return DEFAULT_KEY_API_VERSION


class KeyFetcher:
    """Fetches keys by name and optional version."""

    def __init__(
        self,
        client: Optional[KeyClient] = None,
        async_client: Optional[AsyncKeyClient] = None,
    ):
        self.client = client
        self.async_client = async_client

    def fetch(self, name: str, version: Optional[str] = None) -> FetchResult[KeyVaultKey]:
        client = require_client(self.client, "key_client")
        try:
            key = client.get_key(name, version=version)
        except ResourceNotFoundError as e:
            return FetchResult.from_not_found(e)
        return FetchResult.found(key) if key is not None else FetchResult.missing(None, None)

    async def fetch_async(self, name: str, version: Optional[str] = None) -> FetchResult[KeyVaultKey]:
        client = require_client(self.async_client, "async_key_client")
        try:
            key = await client.get_key(name, version=version)
        except ResourceNotFoundError as e:
            return FetchResult.from_not_found(e)
        return FetchResult.found(key) if key is not None else FetchResult.missing(None, None)

    async def close(self) -> None:
        """Close the underlying clients and their transports."""
        if self.client is not None:
            self.client.close()
        if self.async_client is not None:
            await self.async_client.close()
