"""
Base HTTP client for calling downstream JSON services.

Subclasses get URL resolution against a configured base address, JSON
request serialization and typed response envelopes. Request-level failures
(``httpx.HTTPError``) come back as a ``TransportFailure`` instead of being
raised; anything else propagates to the caller.
"""

import re
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict

from shared.config import Environment
from shared.configuration import Configuration
from shared.logging import get_logger
from shared.metrics import MetricsCollector


LOCAL_BASE_URL = "https://localhost/"
INTERNAL_SERVER_ERROR = 500
DEFAULT_TIMEOUT_SECONDS = 10.0

ABSOLUTE_URL_PATTERN = re.compile(r"^https?://[^\s/?#]+[^\s]*$", re.IGNORECASE)


class HttpRequestModel(BaseModel):
    """Base class for outgoing JSON request bodies."""

    model_config = ConfigDict(populate_by_name=True)


class HttpResponseEnvelope(BaseModel):
    """
    Base class for typed responses.

    Subclasses must be constructible without arguments; ``empty()`` is the
    value handed back when a request fails.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status_code: Optional[int] = None
    status_message: Optional[str] = None

    @classmethod
    def empty(cls):
        return cls()

    @property
    def is_success(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300


TResponse = TypeVar("TResponse", bound=HttpResponseEnvelope)


@dataclass
class TransportFailure:
    """A request that failed at the HTTP layer."""

    status_code: int
    message: str
    exception: httpx.HTTPError


@dataclass
class DispatchResult(Generic[TResponse]):
    """Either a parsed response or a transport failure."""

    response: Optional[TResponse] = None
    failure: Optional[TransportFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def to_envelope(self, response_type: Type[TResponse]) -> TResponse:
        """Collapse the result into a response, stamping failures onto ``response_type.empty()``."""
        if self.failure is None:
            return self.response

        envelope = response_type.empty()
        envelope.status_code = self.failure.status_code
        envelope.status_message = self.failure.message
        return envelope


def is_absolute_url(value: Optional[str]) -> bool:
    return bool(value) and ABSOLUTE_URL_PATTERN.match(value.strip()) is not None


def base_message(exc: BaseException) -> str:
    """Return the message of the innermost exception in a cause chain."""
    root = exc
    seen = {id(exc)}
    while True:
        inner = root.__cause__ or root.__context__
        if inner is None or id(inner) in seen:
            break
        seen.add(id(inner))
        root = inner
    return str(root) or type(root).__name__


def _timeout_setting(configuration: Configuration) -> float:
    value = configuration.get_value("HttpTimeoutSeconds")
    try:
        return float(value) if value else DEFAULT_TIMEOUT_SECONDS
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS


class BaseHttpClient:
    """Dispatches JSON requests against a resolved base URL."""

    def __init__(
        self,
        configuration: Configuration,
        base_url: Optional[str] = None,
        *,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        metrics: Optional[MetricsCollector] = None,
        timeout: Optional[float] = None,
    ):
        self.logger = get_logger("vault.http_client")
        self.metrics = metrics
        self.timeout = timeout if timeout is not None else _timeout_setting(configuration)
        self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=self.timeout))

        if base_url is None:
            base_url = configuration.get_value("ServiceUrl")

        self.base_url = self._resolve_base_url(configuration, base_url)

    @staticmethod
    def _resolve_base_url(configuration: Configuration, base_url: Optional[str]) -> str:
        if is_absolute_url(base_url):
            return base_url.strip()

        if configuration.environment == Environment.LOCAL:
            resolved = LOCAL_BASE_URL
        else:
            resolved = configuration.get_value("ServiceAddress") or ""

        if base_url and base_url.strip():
            suffix = base_url.strip()
            if resolved.endswith("/") and suffix.startswith("/"):
                resolved += suffix[1:]
            elif resolved.endswith("/") or suffix.startswith("/"):
                resolved += suffix
            else:
                resolved += "/" + suffix

        if resolved and not resolved.endswith("/"):
            resolved += "/"
        return resolved

    def get_url(self, path: str) -> str:
        """Resolve ``path`` against the base URL unless it is already absolute."""
        if is_absolute_url(path):
            return path
        return self.base_url + (path[1:] if path.startswith("/") else path)

    async def get(self, response_type: Type[TResponse], path: str) -> TResponse:
        """Send a GET request and return the typed response."""
        result = await self.send("GET", path, response_type)
        return result.to_envelope(response_type)

    async def post(
        self,
        request: Optional[HttpRequestModel],
        response_type: Type[TResponse],
        path: str
    ) -> TResponse:
        """Send a POST request with a JSON body and return the typed response."""
        result = await self.send("POST", path, response_type, request)
        return result.to_envelope(response_type)

    async def send(
        self,
        method: str,
        path: str,
        response_type: Type[TResponse],
        request: Optional[HttpRequestModel] = None
    ) -> DispatchResult[TResponse]:
        """Send a request and return either the parsed response or the transport failure."""
        url = self.get_url(path)
        content = None
        headers = {"Accept": "application/json"}
        if request is not None:
            content = request.model_dump_json(by_alias=True)
            headers["Content-Type"] = "application/json"

        try:
            async with self._client_factory() as client:
                response = await client.request(method, url, content=content, headers=headers)
                return DispatchResult(response=self._parse_response(response, response_type))

        except httpx.HTTPError as e:
            message = base_message(e)
            self.logger.error(
                "HTTP request failed",
                method=method,
                url=url,
                error=message,
                exc_info=True
            )
            # Status errors were already counted under their own code
            if self.metrics and not isinstance(e, httpx.HTTPStatusError):
                self.metrics.record_http_client_request(method, INTERNAL_SERVER_ERROR)
            return DispatchResult(failure=TransportFailure(INTERNAL_SERVER_ERROR, message, e))

        except Exception as e:
            self.logger.error(
                "Unexpected error dispatching HTTP request",
                method=method,
                url=url,
                error=base_message(e),
                exc_info=True
            )
            raise

    def _parse_response(self, response: httpx.Response, response_type: Type[TResponse]) -> TResponse:
        self.logger.info(
            "Response received",
            uri=str(response.request.url),
            status_code=response.status_code,
            reason_phrase=response.reason_phrase
        )

        if self.metrics:
            self.metrics.record_http_client_request(response.request.method, response.status_code)

        response.raise_for_status()

        body = response.text
        if body and body.strip():
            parsed = response_type.model_validate_json(body)
        else:
            parsed = response_type.empty()

        parsed.status_code = response.status_code
        parsed.status_message = response.reason_phrase
        return parsed
