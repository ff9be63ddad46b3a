"""
Shared utilities for the Vault Access Layer.

This package aggregates common building blocks consumed by all services:

- config: Service settings via pydantic-settings
- configuration: Key/value configuration accessor and sources
- logging: Structured logging with request and trace correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- http_client: Base HTTP client for downstream JSON services

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service packages into shared/.
"""
