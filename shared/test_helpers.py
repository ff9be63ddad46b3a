"""
Test helper functions and factory methods for the Vault Access Layer.
"""

import base64
import datetime
from types import SimpleNamespace
from typing import Any, Dict, Optional

from azure.core.exceptions import ResourceNotFoundError
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID


class VaultDataFactory:
    """Factory for creating vault test data."""

    @staticmethod
    def create_self_signed_certificate(common_name: str = "Certificate"):
        """Create a self-signed certificate and its RSA private key."""
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        subject = issuer = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        now = datetime.datetime.now(datetime.timezone.utc)

        certificate = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(days=1))
            .not_valid_after(now + datetime.timedelta(days=30))
            .sign(key, hashes.SHA256())
        )
        return certificate, key

    @staticmethod
    def create_certificate_bundle(name: str, cer: bytes, version: Optional[str] = "v1") -> SimpleNamespace:
        """Shape of a KeyVaultCertificate as returned by the certificate client."""
        return SimpleNamespace(name=name, cer=cer, properties=SimpleNamespace(version=version))

    @staticmethod
    def create_secret(
        name: str,
        value: Optional[str],
        version: Optional[str] = "v1",
        content_type: Optional[str] = None
    ) -> SimpleNamespace:
        """Shape of a KeyVaultSecret as returned by the secret client."""
        return SimpleNamespace(
            name=name,
            value=value,
            properties=SimpleNamespace(version=version, content_type=content_type)
        )

    @staticmethod
    def create_key(name: str, version: Optional[str] = "v1") -> SimpleNamespace:
        """Shape of a KeyVaultKey as returned by the key client."""
        return SimpleNamespace(name=name, id=f"https://vault.example.net/keys/{name}/{version}",
                               properties=SimpleNamespace(version=version))

    @staticmethod
    def create_pkcs12_value(certificate, key, password: Optional[bytes] = None) -> str:
        """Base64 PKCS#12 bundle, the way Key Vault stores exportable certificates."""
        encryption = (
            serialization.BestAvailableEncryption(password) if password else serialization.NoEncryption()
        )
        data = pkcs12.serialize_key_and_certificates(b"cert", key, certificate, None, encryption)
        return base64.b64encode(data).decode()

    @staticmethod
    def create_pem_value(certificate, key) -> str:
        """PEM bundle with the private key first, the way Key Vault stores PEM certificates."""
        key_pem = key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption()
        )
        cert_pem = certificate.public_bytes(serialization.Encoding.PEM)
        return (key_pem + cert_pem).decode()

    @staticmethod
    def create_not_found_error(status_code: int = 404, reason: str = "Not Found") -> ResourceNotFoundError:
        """A ResourceNotFoundError carrying the provider status and reason."""
        error = ResourceNotFoundError(message="(NotFound) The resource was not found.")
        error.status_code = status_code
        error.reason = reason
        return error


class VaultTestEnvironment:
    """Test environment configuration."""

    @staticmethod
    def get_mock_config() -> Dict[str, Any]:
        """Get mock configuration for testing."""
        return {
            "Environment": "test",
            "ServiceUrl": None,
            "ServiceAddress": "https://service.example.com/",
            "KeyVaultClientApiVersion": "7.5",
            "KeyVault": {
                "Uri": "https://test-vault.vault.azure.net/",
                "Certificates": {"Thumbprint": "ABCDEF0123456789"},
                "Retry": {"Total": 1, "BackoffFactor": 1.0, "BackoffMax": 1.0},
            },
            "Port": "8080",
        }
