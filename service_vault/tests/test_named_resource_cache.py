"""
Unit tests for the named-resource read-through cache.
"""

import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.core.exceptions import HttpResponseError
from prometheus_client import CollectorRegistry

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_vault.app.adapters.fetch_result import FetchResult
from service_vault.app.cache.named_resource_cache import NamedResourceCache
from shared.errors import (
    EmptyPayloadError,
    InvalidArgumentError,
    NotFoundError,
    OperationCancelledError,
)
from shared.metrics import MetricsCollector


class TestNamedResourceCache:
    """Test cases for NamedResourceCache."""

    @pytest.fixture
    def cache(self):
        """Create a secret cache."""
        return NamedResourceCache("secret", argument_name="secret_name")

    def test_second_get_is_served_from_cache(self, cache):
        """Two successful gets for a name make one remote fetch."""
        fetch = MagicMock(return_value=FetchResult.found("secret-value"))

        first = cache.get("SecretKey", fetch=fetch)
        second = cache.get("SecretKey", fetch=fetch)

        assert first == "secret-value"
        assert second == "secret-value"
        fetch.assert_called_once_with("SecretKey", None)

    def test_not_found_message_includes_provider_status(self, cache):
        """A missing value fails with the provider code and reason."""
        fetch = MagicMock(return_value=FetchResult.missing(404, "NotFound"))

        with pytest.raises(NotFoundError) as exc_info:
            cache.get("SecretKey", fetch=fetch)

        assert str(exc_info.value) == "Failed to retrieve secret: 'SecretKey'. Code=404 Reason=NotFound"
        assert exc_info.value.provider_status == 404
        assert "SecretKey" not in cache

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_fails_without_fetching(self, cache, name):
        """Blank names are rejected before the vault is called."""
        fetch = MagicMock()

        with pytest.raises(InvalidArgumentError) as exc_info:
            cache.get(name, fetch=fetch)

        assert exc_info.value.argument == "secret_name"
        fetch.assert_not_called()

    def test_lookup_ignores_version(self, cache):
        """The first resolved version is returned for every later version."""
        fetch = MagicMock(side_effect=[FetchResult.found("value-v1"), FetchResult.found("value-v2")])

        first = cache.get("SecretKey", "v1", fetch=fetch)
        second = cache.get("SecretKey", "v2", fetch=fetch)

        assert first == "value-v1"
        assert second == "value-v1"
        fetch.assert_called_once_with("SecretKey", "v1")

    def test_empty_payload_fails(self):
        """An empty value fails with the configured message."""
        cache = NamedResourceCache("certificate", empty_message="Certificate contents are empty.")
        fetch = MagicMock(return_value=FetchResult.empty_payload())

        with pytest.raises(EmptyPayloadError) as exc_info:
            cache.get("cert1", fetch=fetch)

        assert exc_info.value.message == "Certificate contents are empty."
        assert len(cache) == 0

    def test_provider_errors_propagate(self, cache):
        """Errors other than not-found reach the caller unchanged."""
        error = HttpResponseError(message="Forbidden")
        fetch = MagicMock(side_effect=error)

        with pytest.raises(HttpResponseError) as exc_info:
            cache.get("SecretKey", fetch=fetch)

        assert exc_info.value is error

    def test_failed_fetch_is_retried_on_next_get(self, cache):
        """Failures are not cached."""
        fetch = MagicMock(side_effect=[FetchResult.missing(404, "NotFound"), FetchResult.found("value")])

        with pytest.raises(NotFoundError):
            cache.get("SecretKey", fetch=fetch)

        assert cache.get("SecretKey", fetch=fetch) == "value"
        assert fetch.call_count == 2

    def test_set_cancel_event_stops_fetch(self, cache):
        """A cancelled call never reaches the vault."""
        fetch = MagicMock()
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(OperationCancelledError):
            cache.get("SecretKey", fetch=fetch, cancel_event=cancel_event)

        fetch.assert_not_called()

    def test_cancel_event_does_not_block_cached_values(self, cache):
        """Cached values are returned even when the caller has cancelled."""
        fetch = MagicMock(return_value=FetchResult.found("value"))
        cache.get("SecretKey", fetch=fetch)

        cancel_event = threading.Event()
        cancel_event.set()

        assert cache.get("SecretKey", fetch=fetch, cancel_event=cancel_event) == "value"

    def test_concurrent_cold_fetches_keep_first_insert(self, cache):
        """Both racing callers see the single stored value."""
        barrier = threading.Barrier(2, timeout=5)
        counter = {"calls": 0}
        counter_lock = threading.Lock()

        def fetch(name, version):
            with counter_lock:
                counter["calls"] += 1
                value = f"value-{counter['calls']}"
            barrier.wait()
            return FetchResult.found(value)

        results = []

        def worker():
            results.append(cache.get("SecretKey", fetch=fetch))

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert counter["calls"] == 2
        assert len(results) == 2
        assert results[0] == results[1]
        assert cache.names() == ["SecretKey"]

    def test_metrics_record_hits_misses_and_failures(self):
        """Lookups and failures are counted per resource kind."""
        registry = CollectorRegistry()
        metrics = MetricsCollector("test", registry)
        cache = NamedResourceCache("key", metrics=metrics)
        fetch = MagicMock(side_effect=[FetchResult.found("key"), FetchResult.missing(404, "NotFound")])

        cache.get("Key1", fetch=fetch)
        cache.get("Key1", fetch=fetch)
        with pytest.raises(NotFoundError):
            cache.get("Key2", fetch=fetch)

        assert registry.get_sample_value(
            "vault_cache_lookups_total", {"resource_kind": "key", "outcome": "hit"}
        ) == 1.0
        assert registry.get_sample_value(
            "vault_cache_lookups_total", {"resource_kind": "key", "outcome": "miss"}
        ) == 2.0
        assert registry.get_sample_value(
            "vault_fetch_failures_total", {"resource_kind": "key", "error_type": "NotFoundError"}
        ) == 1.0
        assert registry.get_sample_value("vault_cache_entries", {"resource_kind": "key"}) == 1.0


class TestNamedResourceCacheAsync:
    """Test cases for the async cache path."""

    @pytest.mark.asyncio
    async def test_second_get_is_served_from_cache(self):
        """Two successful async gets make one remote fetch."""
        cache = NamedResourceCache("secret")
        fetch = AsyncMock(return_value=FetchResult.found("secret-value"))

        first = await cache.get_async("SecretKey", fetch=fetch)
        second = await cache.get_async("SecretKey", "v2", fetch=fetch)

        assert first == second == "secret-value"
        fetch.assert_awaited_once_with("SecretKey", None)

    @pytest.mark.asyncio
    async def test_not_found_message(self):
        """The async path formats not-found failures the same way."""
        cache = NamedResourceCache("key")
        fetch = AsyncMock(return_value=FetchResult.missing(404, "NotFound"))

        with pytest.raises(NotFoundError) as exc_info:
            await cache.get_async("Key", fetch=fetch)

        assert str(exc_info.value) == "Failed to retrieve key: 'Key'. Code=404 Reason=NotFound"

    @pytest.mark.asyncio
    async def test_blank_name_fails_without_fetching(self):
        """Blank names are rejected on the async path too."""
        cache = NamedResourceCache("key")
        fetch = AsyncMock()

        with pytest.raises(InvalidArgumentError):
            await cache.get_async("", fetch=fetch)

        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_task_cancellation_aborts_fetch(self):
        """Cancelling the calling task aborts the in-flight fetch."""
        cache = NamedResourceCache("secret")
        started = asyncio.Event()

        async def fetch(name, version):
            started.set()
            await asyncio.Event().wait()

        task = asyncio.create_task(cache.get_async("SecretKey", fetch=fetch))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert "SecretKey" not in cache
