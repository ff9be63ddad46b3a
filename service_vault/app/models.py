"""
Certificate model and loaders for vault certificate payloads.
"""

import base64
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from shared.errors import InvalidFormatError


PKCS12_CONTENT_TYPE = "application/x-pkcs12"
PEM_CONTENT_TYPE = "application/x-pem-file"

_PEM_BLOCK = re.compile(
    r"-----BEGIN ([A-Z0-9 ]+)-----\s.*?-----END \1-----",
    re.DOTALL
)


@dataclass
class Certificate:
    """An X.509 certificate retrieved from the vault."""

    name: str
    certificate: x509.Certificate
    version: Optional[str] = None
    private_key: Optional[Any] = None
    chain: Optional[List[x509.Certificate]] = None

    @property
    def raw_data(self) -> bytes:
        """DER encoding of the certificate."""
        return self.certificate.public_bytes(serialization.Encoding.DER)

    @property
    def thumbprint(self) -> str:
        """SHA-1 thumbprint as upper-case hex."""
        return self.certificate.fingerprint(hashes.SHA1()).hex().upper()

    @property
    def has_private_key(self) -> bool:
        return self.private_key is not None

    @classmethod
    def from_der(cls, name: str, cer: bytes, version: Optional[str] = None) -> "Certificate":
        return cls(name=name, certificate=x509.load_der_x509_certificate(bytes(cer)), version=version)

    @classmethod
    def from_secret_value(
        cls,
        name: str,
        value: str,
        content_type: Optional[str],
        version: Optional[str] = None
    ) -> "Certificate":
        """
        Load a certificate bundle stored as a vault secret.

        Key Vault stores the private part of a certificate as a secret whose
        value is either base64 PKCS#12 or a PEM bundle, depending on the
        certificate policy's content type.
        """
        if content_type == PEM_CONTENT_TYPE or (content_type is None and "-----BEGIN" in value):
            return cls._from_pem(name, value, version)
        return cls._from_pkcs12(name, value, version)

    @classmethod
    def _from_pkcs12(cls, name: str, value: str, version: Optional[str]) -> "Certificate":
        try:
            data = base64.b64decode(value, validate=True)
            private_key, certificate, additional = pkcs12.load_key_and_certificates(data, None)
        except ValueError as e:
            raise InvalidFormatError(
                f"Certificate '{name}' is not a valid PKCS#12 bundle.",
                details={"name": name}
            ) from e

        if certificate is None:
            raise InvalidFormatError(f"Certificate '{name}' bundle has no certificate.", details={"name": name})

        return cls(
            name=name,
            certificate=certificate,
            version=version,
            private_key=private_key,
            chain=list(additional or [])
        )

    @classmethod
    def _from_pem(cls, name: str, value: str, version: Optional[str]) -> "Certificate":
        certificates = []
        private_key = None
        try:
            for match in _PEM_BLOCK.finditer(value):
                block = match.group(0).encode()
                if match.group(1) == "CERTIFICATE":
                    certificates.append(x509.load_pem_x509_certificate(block))
                elif match.group(1).endswith("PRIVATE KEY") and private_key is None:
                    private_key = serialization.load_pem_private_key(block, password=None)
        except ValueError as e:
            raise InvalidFormatError(
                f"Certificate '{name}' is not a valid PEM bundle.",
                details={"name": name}
            ) from e

        if not certificates:
            raise InvalidFormatError(f"Certificate '{name}' bundle has no certificate.", details={"name": name})

        return cls(
            name=name,
            certificate=certificates[0],
            version=version,
            private_key=private_key,
            chain=certificates[1:]
        )
