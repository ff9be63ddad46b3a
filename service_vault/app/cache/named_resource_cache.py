"""
Read-through cache for named vault resources.

Entries are keyed by resource name only: the first version resolved for a
name is returned for every later lookup of that name, whatever version is
asked for. Nothing is evicted or refreshed for the lifetime of the cache.
"""

import asyncio
import threading
import time
from typing import Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from shared.errors import (
    EmptyPayloadError,
    InvalidArgumentError,
    NotFoundError,
    OperationCancelledError,
)
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..adapters.fetch_result import FetchResult


T = TypeVar("T")

Fetch = Callable[[str, Optional[str]], FetchResult[T]]
AsyncFetch = Callable[[str, Optional[str]], Awaitable[FetchResult[T]]]

_MISSING = object()


class NamedResourceCache(Generic[T]):
    """Append-only cache that fetches from the vault on a miss."""

    def __init__(
        self,
        resource_kind: str,
        *,
        argument_name: str = "name",
        empty_message: Optional[str] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.resource_kind = resource_kind
        self.argument_name = argument_name
        self.empty_message = empty_message or f"{resource_kind.capitalize()} contents are empty."
        self.metrics = metrics
        self.logger = get_logger(f"vault.{resource_kind}_cache")
        self._entries: Dict[str, T] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def names(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def get(
        self,
        name: str,
        version: Optional[str] = None,
        *,
        fetch: Fetch,
        cancel_event: Optional[threading.Event] = None,
    ) -> T:
        """
        Return the cached value for ``name``, fetching it on a miss.

        Raises:
            InvalidArgumentError: ``name`` is missing or blank
            OperationCancelledError: ``cancel_event`` was set before the fetch
            NotFoundError: the vault had no value for ``name``
            EmptyPayloadError: the vault returned an empty value
        """
        self.logger.info("Retrieving resource", resource_kind=self.resource_kind, name=name, version=version)

        try:
            self._validate_name(name)

            cached = self._lookup(name)
            if cached is not _MISSING:
                return cached

            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError(details={"resource_kind": self.resource_kind, "name": name})

            start_time = time.time()
            result = fetch(name, version)
            self._record_duration(start_time)

            return self._store(name, result)
        except Exception as e:
            self._log_failure(name, version, e)
            raise

    async def get_async(
        self,
        name: str,
        version: Optional[str] = None,
        *,
        fetch: AsyncFetch,
    ) -> T:
        """Async variant of ``get``; cancel the calling task to abort the fetch."""
        self.logger.info("Retrieving resource", resource_kind=self.resource_kind, name=name, version=version)

        try:
            self._validate_name(name)

            cached = self._lookup(name)
            if cached is not _MISSING:
                return cached

            start_time = time.time()
            result = await fetch(name, version)
            self._record_duration(start_time)

            return self._store(name, result)
        except (Exception, asyncio.CancelledError) as e:
            self._log_failure(name, version, e)
            raise

    def _validate_name(self, name: Optional[str]) -> None:
        if name is None or not str(name).strip():
            raise InvalidArgumentError(self.argument_name)

    def _lookup(self, name: str):
        value = self._entries.get(name, _MISSING)
        if self.metrics:
            self.metrics.record_cache_lookup(self.resource_kind, hit=value is not _MISSING)
        return value

    def _store(self, name: str, result: FetchResult[T]) -> T:
        if not result.has_value:
            raise NotFoundError(self.resource_kind, name, result.status, result.reason)

        if result.empty:
            raise EmptyPayloadError(self.empty_message, details={"resource_kind": self.resource_kind, "name": name})

        # Add if absent; a concurrent first fetch of the same name may already have won
        with self._lock:
            stored = self._entries.setdefault(name, result.value)
            count = len(self._entries)

        if self.metrics:
            self.metrics.set_cache_entries(self.resource_kind, count)
        return stored

    def _record_duration(self, start_time: float) -> None:
        if self.metrics:
            self.metrics.record_fetch_duration(self.resource_kind, time.time() - start_time)

    def _log_failure(self, name: Optional[str], version: Optional[str], error: BaseException) -> None:
        self.logger.error(
            "Failed to retrieve resource",
            resource_kind=self.resource_kind,
            name=name,
            version=version,
            error=str(error) or type(error).__name__,
            exc_info=True
        )
        if self.metrics:
            self.metrics.record_fetch_failure(self.resource_kind, type(error).__name__)
