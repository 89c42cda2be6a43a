"""Error taxonomy and typed results for MoneyHub.

Adapter calls (Plaid gateway, institution resolver) return a ``Result``
instead of raising, so the aggregator and merger decide explicitly whether a
failure skips a connection, degrades the output, or aborts the request.
Exceptions are reserved for the operation boundary.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    """Failure categories shared by adapters and services."""

    NOT_FOUND = "not_found"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful adapter call."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed adapter call with its category and a log-safe message."""

    kind: ErrorKind
    message: str
    code: str | None = None

    @property
    def ok(self) -> bool:
        return False


Result = Ok[T] | Err


class MoneyHubError(Exception):
    """Base class for errors raised by MoneyHub services."""


class NotFoundError(MoneyHubError):
    """Raised when a user, connection, or account cannot be resolved."""

    kind = ErrorKind.NOT_FOUND


class ConfigurationError(MoneyHubError):
    """Raised when services cannot be built from the given settings."""


__all__ = [
    "ConfigurationError",
    "Err",
    "ErrorKind",
    "MoneyHubError",
    "NotFoundError",
    "Ok",
    "Result",
]
