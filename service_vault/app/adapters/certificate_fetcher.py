"""
Certificate fetcher backed by the Key Vault certificate and secret clients.
"""

from typing import Optional

from azure.core.exceptions import ResourceNotFoundError
from azure.keyvault.certificates import CertificateClient
from azure.keyvault.certificates.aio import CertificateClient as AsyncCertificateClient
from azure.keyvault.secrets import SecretClient
from azure.keyvault.secrets.aio import SecretClient as AsyncSecretClient

from shared.logging import get_logger

from .fetch_result import FetchResult, require_client
from ..models import Certificate


class CertificateFetcher:
    """
    Fetches certificates from Key Vault.

    ``fetch`` returns the public certificate from the certificate client.
    ``download`` reads the certificate's backing secret, which also carries
    the private key.
    """

    def __init__(
        self,
        client: Optional[CertificateClient] = None,
        async_client: Optional[AsyncCertificateClient] = None,
        secret_client: Optional[SecretClient] = None,
        async_secret_client: Optional[AsyncSecretClient] = None,
    ):
        self.client = client
        self.async_client = async_client
        self.secret_client = secret_client
        self.async_secret_client = async_secret_client
        self.logger = get_logger("vault.certificate_fetcher")

    @classmethod
    def from_vault_url(cls, vault_url: str, credential, async_credential=None, **client_kwargs) -> "CertificateFetcher":
        return cls(
            client=CertificateClient(vault_url=vault_url, credential=credential, **client_kwargs),
            async_client=AsyncCertificateClient(vault_url=vault_url, credential=async_credential, **client_kwargs)
            if async_credential is not None else None,
            secret_client=SecretClient(vault_url=vault_url, credential=credential, **client_kwargs),
            async_secret_client=AsyncSecretClient(vault_url=vault_url, credential=async_credential, **client_kwargs)
            if async_credential is not None else None,
        )

    def fetch(self, name: str, version: Optional[str] = None) -> FetchResult[Certificate]:
        client = require_client(self.client, "client")
        try:
            if version:
                bundle = client.get_certificate_version(name, version)
            else:
                bundle = client.get_certificate(name)
        except ResourceNotFoundError as e:
            return FetchResult.from_not_found(e)
        return self._to_result(name, bundle)

    async def fetch_async(self, name: str, version: Optional[str] = None) -> FetchResult[Certificate]:
        client = require_client(self.async_client, "async_client")
        try:
            if version:
                bundle = await client.get_certificate_version(name, version)
            else:
                bundle = await client.get_certificate(name)
        except ResourceNotFoundError as e:
            return FetchResult.from_not_found(e)
        return self._to_result(name, bundle)

    def download(self, name: str, version: Optional[str] = None) -> FetchResult[Certificate]:
        client = require_client(self.secret_client, "secret_client")
        try:
            secret = client.get_secret(name, version=version)
        except ResourceNotFoundError as e:
            return FetchResult.from_not_found(e)
        return self._secret_to_result(name, secret)

    async def download_async(self, name: str, version: Optional[str] = None) -> FetchResult[Certificate]:
        client = require_client(self.async_secret_client, "async_secret_client")
        try:
            secret = await client.get_secret(name, version=version)
        except ResourceNotFoundError as e:
            return FetchResult.from_not_found(e)
        return self._secret_to_result(name, secret)

    def _to_result(self, name: str, bundle) -> FetchResult[Certificate]:
        if bundle is None:
            return FetchResult.missing(None, None)
        if not bundle.cer:
            return FetchResult.empty_payload()

        version = bundle.properties.version if bundle.properties else None
        self.logger.debug("Certificate fetched", name=bundle.name or name, version=version)
        return FetchResult.found(Certificate.from_der(bundle.name or name, bundle.cer, version))

    def _secret_to_result(self, name: str, secret) -> FetchResult[Certificate]:
        if secret is None:
            return FetchResult.missing(None, None)
        if not secret.value:
            return FetchResult.empty_payload()

        properties = secret.properties
        version = properties.version if properties else None
        content_type = properties.content_type if properties else None
        self.logger.debug("Certificate bundle fetched", name=name, version=version, content_type=content_type)
        return FetchResult.found(Certificate.from_secret_value(name, secret.value, content_type, version))

    async def close(self) -> None:
        """Close the certificate and secret clients and their transports."""
        for client in (self.client, self.secret_client):
            if client is not None:
                client.close()
        for async_client in (self.async_client, self.async_secret_client):
            if async_client is not None:
                await async_client.close()
