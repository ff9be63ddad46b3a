"""
Shared metrics configuration for the Vault Access Layer.
"""

from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry, REGISTRY
from typing import Dict, Any, Optional
import threading


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else REGISTRY
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Outbound HTTP client metrics
        self._metrics["http_client_requests_total"] = Counter(
            "http_client_requests_total",
            "Total outbound HTTP requests",
            ["method", "status_code"],
            registry=self.registry
        )

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        # Vault cache metrics
        self._metrics["vault_cache_lookups_total"] = Counter(
            "vault_cache_lookups_total",
            "Total named-resource cache lookups",
            ["resource_kind", "outcome"],
            registry=self.registry
        )

        self._metrics["vault_fetch_failures_total"] = Counter(
            "vault_fetch_failures_total",
            "Total failed vault fetches",
            ["resource_kind", "error_type"],
            registry=self.registry
        )

        self._metrics["vault_fetch_duration_seconds"] = Histogram(
            "vault_fetch_duration_seconds",
            "Vault fetch duration in seconds",
            ["resource_kind"],
            registry=self.registry
        )

        self._metrics["vault_cache_entries"] = Gauge(
            "vault_cache_entries",
            "Entries held by a named-resource cache",
            ["resource_kind"],
            registry=self.registry
        )

        # Free-form metric emitted through the log endpoints
        self._metrics["log_metric"] = Gauge(
            "log_metric",
            "Last value reported through a log metric call",
            ["name"],
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_http_client_request(self, method: str, status_code: int):
        """Record an outbound HTTP request."""
        self._metrics["http_client_requests_total"].labels(
            method=method,
            status_code=str(status_code)
        ).inc()

    def record_health_check(self, status: str):
        """Record health check."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str):
        """Record error."""
        self._metrics["errors_total"].labels(
            error_type=error_type,
            service=self.service_name
        ).inc()

    def record_cache_lookup(self, resource_kind: str, hit: bool):
        """Record a named-resource cache hit or miss."""
        self._metrics["vault_cache_lookups_total"].labels(
            resource_kind=resource_kind,
            outcome="hit" if hit else "miss"
        ).inc()

    def record_fetch_failure(self, resource_kind: str, error_type: str):
        """Record a failed vault fetch."""
        self._metrics["vault_fetch_failures_total"].labels(
            resource_kind=resource_kind,
            error_type=error_type
        ).inc()

    def record_fetch_duration(self, resource_kind: str, duration: float):
        """Record how long a vault fetch took."""
        self._metrics["vault_fetch_duration_seconds"].labels(
            resource_kind=resource_kind
        ).observe(duration)

    def set_cache_entries(self, resource_kind: str, count: int):
        """Update the entry count of a cache."""
        self._metrics["vault_cache_entries"].labels(resource_kind=resource_kind).set(count)

    def record_log_metric(self, name: str, value: float):
        """Record a metric reported alongside log output."""
        self._metrics["log_metric"].labels(name=name).set(value)


_collectors: Dict[str, MetricsCollector] = {}
_collectors_lock = threading.Lock()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """
    Get a metrics collector for a service.

    Collectors on the default registry are shared per service name, since
    prometheus_client rejects registering the same series twice.
    """
    if registry is not None:
        return MetricsCollector(service_name, registry)

    with _collectors_lock:
        if service_name not in _collectors:
            _collectors[service_name] = MetricsCollector(service_name)
        return _collectors[service_name]
