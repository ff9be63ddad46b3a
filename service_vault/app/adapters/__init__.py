"""
Adapters package for the Vault Service.

Wraps the Azure Key Vault SDK clients. Each fetcher turns an SDK call into
a FetchResult:

- value found
- value missing, with the provider's status code and reason phrase
- value found but empty

Provider errors other than "not found" propagate unchanged.
"""

from .fetch_result import FetchResult
from .certificate_fetcher import CertificateFetcher
from .secret_fetcher import SecretFetcher
from .key_fetcher import KeyFetcher, resolve_api_version
