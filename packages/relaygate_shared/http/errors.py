"""Typed errors for the shared HTTP client helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass(eq=False)
class HttpError(Exception):
    """Base error type for shared HTTP helper failures."""

    message: str

    def __str__(self) -> str:
        """Return the human-readable error message."""
        return self.message


@dataclass(eq=False)
class HttpClientError(HttpError):
    """Base error for outbound HTTP client call failures."""

    method: str
    url: str
    retryable: bool = False


@dataclass(eq=False)
class HttpRequestError(HttpClientError):
    """Transport-level failure: connect, timeout, or broken stream."""

    timed_out: bool = False
    cause: Exception | None = None


@dataclass(eq=False)
class HttpStatusError(HttpClientError):
    """Non-success status code returned by the remote endpoint."""

    status_code: int = 0
    response_body: str = ""
    response_headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class HttpJsonDecodeError(HttpClientError):
    """Successful response whose body is not the expected JSON."""

    status_code: int = 0
    response_body: str = ""
    cause: Exception | None = None
