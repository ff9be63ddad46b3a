"""
Result of a single vault fetch.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from azure.core.exceptions import ResourceNotFoundError

from shared.errors import InvalidArgumentError


T = TypeVar("T")


@dataclass
class FetchResult(Generic[T]):
    """
    Outcome of asking the vault for a named resource.

    ``has_value`` False means the vault had nothing under the name; ``status``
    and ``reason`` then carry the provider's status code and reason phrase.
    ``empty`` marks a value whose content is structurally empty.
    """

    value: Optional[T] = None
    has_value: bool = False
    status: Optional[int] = None
    reason: Optional[str] = None
    empty: bool = False

    @classmethod
    def found(cls, value: T, status: int = 200, reason: str = "OK") -> "FetchResult[T]":
        return cls(value=value, has_value=True, status=status, reason=reason)

    @classmethod
    def missing(cls, status: Optional[int] = 404, reason: Optional[str] = "Not Found") -> "FetchResult[T]":
        return cls(has_value=False, status=status, reason=reason)

    @classmethod
    def empty_payload(cls, status: int = 200, reason: str = "OK") -> "FetchResult[T]":
        return cls(has_value=True, status=status, reason=reason, empty=True)

    @classmethod
    def from_not_found(cls, error: ResourceNotFoundError) -> "FetchResult[T]":
        return cls.missing(error.status_code, error.reason)


def require_client(client, argument: str):
    """Return ``client``, failing when the fetcher was built without it."""
    if client is None:
        raise InvalidArgumentError(argument, f"No {argument.replace('_', ' ')} is configured.")
    return client
