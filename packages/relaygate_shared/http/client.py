"""Thin asynchronous HTTP client wrapper over httpx."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx

from .errors import HttpJsonDecodeError, HttpRequestError, HttpStatusError


def _response_text(response: httpx.Response) -> str:
    """Return response text without raising secondary decode errors."""
    try:
        return response.text
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        return ""


def _status_error(response: httpx.Response, *, body: str | None = None) -> HttpStatusError:
    """Build a typed status error from one HTTP response."""
    status_code = response.status_code
    return HttpStatusError(
        message=f"HTTP {status_code} for {response.request.method} {response.request.url}",
        method=response.request.method,
        url=str(response.request.url),
        retryable=status_code >= 500 or status_code == 429,
        status_code=status_code,
        response_body=_response_text(response) if body is None else body,
        response_headers=dict(response.headers.items()),
    )


def _request_error(
    exc: httpx.RequestError | httpx.InvalidURL, *, method: str, url: str
) -> HttpRequestError:
    """Map one httpx transport or URL exception to the shared typed error."""
    request: httpx.Request | None = None
    if isinstance(exc, httpx.RequestError):
        try:
            request = exc.request
        except RuntimeError:
            request = None
    request_url = str(request.url) if request is not None else url
    request_method = request.method if request is not None else method.upper()
    return HttpRequestError(
        message=f"HTTP request failed for {request_method} {request_url}",
        method=request_method,
        url=request_url,
        retryable=not isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)),
        timed_out=isinstance(exc, httpx.TimeoutException),
        cause=exc,
    )


class AsyncHttpClient:
    """Asynchronous wrapper over ``httpx.AsyncClient`` with typed failures."""

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        follow_redirects: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=dict(headers or {}),
            follow_redirects=follow_redirects,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close underlying transport resources when owned."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncHttpClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        raise_for_status: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Issue one request and map transport/status failures to typed errors."""
        try:
            response = await self._client.request(method=method, url=url, **kwargs)
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise _request_error(exc, method=method, url=url) from exc

        if raise_for_status and response.is_error:
            raise _status_error(response)
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one GET request."""
        return await self.request("GET", url, **kwargs)

    async def post_json(self, url: str, *, json: Any, **kwargs: Any) -> Any:
        """POST a JSON body and decode the JSON response."""
        response = await self.request("POST", url, json=json, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise HttpJsonDecodeError(
                message=f"Invalid JSON response for {response.request.method} {response.request.url}",
                method=response.request.method,
                url=str(response.request.url),
                retryable=False,
                status_code=response.status_code,
                response_body=_response_text(response),
                cause=exc,
            ) from exc

    async def stream_lines(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> AsyncIterator[str]:
        """Issue one streaming request and yield non-empty response lines.

        Closing the iterator early closes the underlying response, which is
        how callers abort an in-flight upstream stream.
        """
        try:
            async with self._client.stream(method, url, **kwargs) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise _status_error(response, body=body)
                async for line in response.aiter_lines():
                    if line.strip():
                        yield line
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise _request_error(exc, method=method, url=url) from exc
