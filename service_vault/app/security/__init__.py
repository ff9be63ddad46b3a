"""
Security services for the Vault Service.
"""

from .certificate_service import CertificateService
from .key_vault_service import KeyVaultService
