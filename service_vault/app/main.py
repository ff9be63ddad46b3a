"""
Vault service for the Vault Access Layer.
"""

from typing import Any, Dict, Optional

from shared.base_service import BaseService
from shared.configuration import Configuration
from shared.logging import get_logger

from .security.certificate_service import CertificateService
from .security.key_vault_service import KeyVaultService


LOG_METRIC_VALUE = 100


class VaultService(BaseService):
    """Vault service implementation."""

    def __init__(
        self,
        certificate_service: Optional[CertificateService] = None,
        key_vault_service: Optional[KeyVaultService] = None,
    ):
        super().__init__("vault", 8020)

        self.configuration = Configuration.from_settings(self.config)
        self.host_logger = get_logger("vault.host")

        if self.config.key_vault_url and (certificate_service is None or key_vault_service is None):
            certificate_service = certificate_service or CertificateService.from_configuration(
                self.configuration, metrics=self.metrics
            )
            key_vault_service = key_vault_service or KeyVaultService(self.configuration, metrics=self.metrics)

        self.certificate_service = certificate_service
        self.key_vault_service = key_vault_service

        self._setup_vault_routes()

    def _setup_vault_routes(self):
        """Set up vault-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "vault",
                "message": "Vault Access Layer - Vault Service",
                "version": "1.0.0",
                "capabilities": ["certificates", "secrets", "keys"]
            }

        @self.app.api_route("/logs/generate", methods=["GET", "POST"])
        async def generate_logs():
            """Emit one log line per severity using the service logger."""
            self._emit_logs(self.logger)
            return {"status": "ok", "message": "Welcome to the Vault Service!"}

        @self.app.get("/logs/generate/host")
        async def generate_host_logs():
            """Emit one log line per severity using the host logger."""
            self._emit_logs(self.host_logger, " with Logger from HostFactory")
            return {"status": "ok"}

        @self.app.get("/cache/stats")
        async def cache_stats():
            """Report how many entries each vault cache holds."""
            return self.cache_stats()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.close()

    def _emit_logs(self, logger, suffix: str = ""):
        logger.debug(f"Logging Debug{suffix}")
        metric_name = f"Logging metric{suffix}"
        logger.info(metric_name, metric_name=metric_name, metric_value=LOG_METRIC_VALUE)
        self.metrics.record_log_metric(metric_name, LOG_METRIC_VALUE)
        logger.info(f"Logging information{suffix}")
        logger.warning(f"Logging warning{suffix}")
        logger.error(f"Logging error{suffix}")
        logger.critical(f"Logging critical{suffix}")

    def cache_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {"configured": self.certificate_service is not None or self.key_vault_service is not None}
        if self.certificate_service is not None:
            stats["certificates"] = len(self.certificate_service.cache)
        if self.key_vault_service is not None:
            stats["secrets"] = len(self.key_vault_service.secret_cache)
            stats["keys"] = len(self.key_vault_service.key_cache)
        return stats

    async def close(self):
        """Release the vault clients held by the services."""
        if self.certificate_service is not None:
            await self.certificate_service.close()
        if self.key_vault_service is not None:
            await self.key_vault_service.close()

    async def _check_dependencies(self) -> Dict[str, str]:
        configured = self.certificate_service is not None or self.key_vault_service is not None
        return {"key_vault": "configured" if configured else "not_configured"}


def create_app():
    """Create vault service application."""
    service = VaultService()
    return service.app


if __name__ == "__main__":
    service = VaultService()
    service.run()
