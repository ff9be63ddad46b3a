"""
Unit tests for the Vault main service.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_vault.app.adapters.certificate_fetcher import CertificateFetcher
from service_vault.app.adapters.key_fetcher import KeyFetcher
from service_vault.app.adapters.secret_fetcher import SecretFetcher
from service_vault.app.main import VaultService
from service_vault.app.security.certificate_service import CertificateService
from service_vault.app.security.key_vault_service import KeyVaultService
from shared.configuration import Configuration, MappingConfigurationSource
from shared.test_helpers import VaultDataFactory, VaultTestEnvironment


@pytest.fixture(autouse=True)
def no_vault_url(monkeypatch):
    """Keep the service from building real Azure clients."""
    monkeypatch.delenv("VAULT_KEY_VAULT_URL", raising=False)


class TestVaultService:
    """Test cases for VaultService."""

    @pytest.fixture
    def secret_client(self):
        client = MagicMock()
        client.get_secret.return_value = VaultDataFactory.create_secret("SecretKey", "SecretValue")
        return client

    @pytest.fixture
    def vault_service(self, secret_client):
        """Create a VaultService with mocked vault clients."""
        configuration = Configuration(MappingConfigurationSource(VaultTestEnvironment.get_mock_config()))
        certificate_service = CertificateService(CertificateFetcher(client=MagicMock()))
        key_vault_service = KeyVaultService(
            configuration,
            SecretFetcher(client=secret_client),
            KeyFetcher(client=MagicMock())
        )
        return VaultService(certificate_service, key_vault_service)

    @pytest.fixture
    def client(self, vault_service):
        """Create test client."""
        return TestClient(vault_service.app)

    def test_root_endpoint(self, client):
        """Test root endpoint."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "vault"
        assert "secrets" in data["capabilities"]

    @pytest.mark.parametrize("method", ["get", "post"])
    def test_generate_logs(self, client, method):
        """The log endpoint answers both GET and POST."""
        response = getattr(client, method)("/logs/generate")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "message": "Welcome to the Vault Service!"}

    def test_generate_logs_records_metric(self, client, vault_service):
        """The metric log line is mirrored into the log_metric gauge."""
        client.get("/logs/generate")

        assert REGISTRY.get_sample_value(
            "log_metric", {"name": "Logging metric"}
        ) == 100.0

    def test_generate_host_logs(self, client, vault_service):
        """The host log endpoint uses the host logger."""
        vault_service.host_logger = MagicMock()

        response = client.get("/logs/generate/host")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        vault_service.host_logger.critical.assert_called_once_with(
            "Logging critical with Logger from HostFactory"
        )

    def test_generate_host_logs_records_suffixed_metric(self, client):
        """The host variant reports its metric under the suffixed name."""
        client.get("/logs/generate/host")

        assert REGISTRY.get_sample_value(
            "log_metric", {"name": "Logging metric with Logger from HostFactory"}
        ) == 100.0

    def test_generate_logs_emits_every_level(self, client, vault_service):
        """One line is written per severity."""
        vault_service.logger = MagicMock()

        client.post("/logs/generate")

        vault_service.logger.debug.assert_called_once_with("Logging Debug")
        vault_service.logger.info.assert_any_call("Logging information")
        vault_service.logger.warning.assert_called_once_with("Logging warning")
        vault_service.logger.error.assert_called_once_with("Logging error")
        vault_service.logger.critical.assert_called_once_with("Logging critical")

    def test_cache_stats(self, client, vault_service):
        """Cache sizes are reported per resource kind."""
        vault_service.key_vault_service.get_secret("SecretKey")

        response = client.get("/cache/stats")

        assert response.status_code == 200
        assert response.json() == {"configured": True, "certificates": 0, "secrets": 1, "keys": 0}

    def test_health_check(self, client):
        """Health reports the Key Vault as configured."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["dependencies"] == {"key_vault": "configured"}

    def test_request_id_header(self, client):
        """The request id is echoed back."""
        response = client.get("/", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_metrics_endpoint(self, client):
        """Prometheus metrics are exposed."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text

    def test_vault_errors_map_to_status_codes(self, vault_service, secret_client):
        """A missing secret surfaces as a 404 error response."""
        secret_client.get_secret.side_effect = VaultDataFactory.create_not_found_error(404, "NotFound")

        @vault_service.app.get("/secrets/{name}")
        async def read_secret(name: str):
            return {"value": vault_service.key_vault_service.get_secret(name).value}

        response = TestClient(vault_service.app).get("/secrets/Missing")

        assert response.status_code == 404
        data = response.json()
        assert data["code"] == "NOT_FOUND"
        assert data["message"] == "Failed to retrieve secret: 'Missing'. Code=404 Reason=NotFound"

    def test_shutdown_closes_vault_clients(self):
        """Stopping the app closes every async vault client."""
        async_clients = [MagicMock() for _ in range(4)]
        for async_client in async_clients:
            async_client.close = AsyncMock()
        cert_client, cert_secret_client, secret_client, key_client = async_clients

        configuration = Configuration(MappingConfigurationSource(VaultTestEnvironment.get_mock_config()))
        certificate_service = CertificateService(
            CertificateFetcher(async_client=cert_client, async_secret_client=cert_secret_client)
        )
        key_vault_service = KeyVaultService(
            configuration,
            SecretFetcher(async_client=secret_client),
            KeyFetcher(async_client=key_client)
        )
        service = VaultService(certificate_service, key_vault_service)

        with TestClient(service.app) as client:
            client.get("/health")

        for async_client in async_clients:
            async_client.close.assert_awaited_once_with()


class TestUnconfiguredVaultService:
    """A service started without a vault URL."""

    def test_cache_stats_without_vault(self):
        service = VaultService()

        response = TestClient(service.app).get("/cache/stats")

        assert response.json() == {"configured": False}

    def test_health_reports_not_configured(self):
        service = VaultService()

        response = TestClient(service.app).get("/health")

        assert response.json()["dependencies"] == {"key_vault": "not_configured"}
