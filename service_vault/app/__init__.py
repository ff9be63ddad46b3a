"""
Vault Service package for the Vault Access Layer.

The service wraps Azure Key Vault behind read-through caches:
- Certificates: public certificates and downloadable certificate bundles
- Secrets and keys: secret values and key material by name

Structure:
- app.main: FastAPI app, health, metrics and log endpoints.
- app.adapters: Azure SDK fetchers returning FetchResult values.
- app.cache: Named-resource read-through cache.
- app.security: Certificate and Key Vault services built on the cache.
"""
