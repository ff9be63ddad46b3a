"""
Certificate retrieval service.
"""

import threading
from typing import Optional

from azure.identity import DefaultAzureCredential
from azure.identity.aio import DefaultAzureCredential as AsyncDefaultAzureCredential

from shared.configuration import Configuration
from shared.errors import InvalidArgumentError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..adapters.certificate_fetcher import CertificateFetcher
from ..cache.named_resource_cache import NamedResourceCache
from ..models import Certificate


CERTIFICATE_EMPTY_MESSAGE = "Certificate contents are empty."


class CertificateService:
    """
    Retrieves certificates from Key Vault and keeps them for the life of
    the service.

    ``get_certificate`` and ``download_certificate`` share one cache, so
    whichever form is resolved first for a name is returned by both.
    """

    def __init__(
        self,
        fetcher: CertificateFetcher,
        cache: Optional[NamedResourceCache[Certificate]] = None,
        metrics: Optional[MetricsCollector] = None,
        *,
        async_credential=None,
    ):
        self.logger = get_logger("vault.certificate_service")
        self._async_credential = async_credential

        try:
            if fetcher is None:
                raise InvalidArgumentError("fetcher")
            self.fetcher = fetcher
            self.cache = cache if cache is not None else NamedResourceCache(
                "certificate",
                argument_name="certificate_name",
                empty_message=CERTIFICATE_EMPTY_MESSAGE,
                metrics=metrics
            )
        except Exception as e:
            self.logger.error("Certificate service initialization failed", error=str(e))
            raise

    @classmethod
    def from_configuration(
        cls,
        configuration: Configuration,
        credential=None,
        async_credential=None,
        metrics: Optional[MetricsCollector] = None,
    ) -> "CertificateService":
        """Build the service against the vault at ``KeyVault:Uri``."""
        vault_url = configuration.get_required_value("KeyVault:Uri")
        owned_async_credential = None
        if async_credential is None:
            async_credential = owned_async_credential = AsyncDefaultAzureCredential()

        fetcher = CertificateFetcher.from_vault_url(
            vault_url,
            credential or DefaultAzureCredential(),
            async_credential
        )
        return cls(fetcher, metrics=metrics, async_credential=owned_async_credential)

    def get_certificate(
        self,
        certificate_name: str,
        cancel_event: Optional[threading.Event] = None
    ) -> Certificate:
        """Return the public certificate stored under ``certificate_name``."""
        return self.cache.get(certificate_name, fetch=self.fetcher.fetch, cancel_event=cancel_event)

    async def get_certificate_async(self, certificate_name: str) -> Certificate:
        return await self.cache.get_async(certificate_name, fetch=self.fetcher.fetch_async)

    def download_certificate(
        self,
        certificate_name: str,
        version: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> Certificate:
        """Return the certificate with its private key, when the policy allows export."""
        return self.cache.get(
            certificate_name,
            version,
            fetch=self.fetcher.download,
            cancel_event=cancel_event
        )

    async def download_certificate_async(self, certificate_name: str, version: Optional[str] = None) -> Certificate:
        return await self.cache.get_async(certificate_name, version, fetch=self.fetcher.download_async)

    async def close(self) -> None:
        """Close the vault clients and the credential the service created."""
        await self.fetcher.close()
        if self._async_credential is not None:
            await self._async_credential.close()
