"""Shared plumbing for the HTTP clients: errors, pacing and the async base client."""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from keyword_tiers.config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class APIError(Exception):
    """
    Base exception for remote service failures.

    ``status_code`` is the HTTP status when one was received and
    ``response_data`` the decoded body (or ``{"raw": text}``).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data


class RateLimitError(APIError):
    """Raised when a service answers 429."""

    pass


class AuthenticationError(APIError):
    """Raised when a service rejects our credentials."""

    pass


class RateLimiter:
    """
    Token bucket allowing ``calls_per_minute`` with bursts of ``burst_size``.

    ``sleep`` and ``clock`` can be swapped out in tests.
    """

    def __init__(
        self,
        calls_per_minute: int,
        burst_size: int | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rate = calls_per_minute / 60.0
        self.burst_size = burst_size or calls_per_minute
        self.tokens = float(self.burst_size)
        self._sleep = sleep or asyncio.sleep
        self._clock = clock
        self._last = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        self.tokens = min(self.burst_size, self.tokens + (now - self._last) * self.rate)
        self._last = now

    async def acquire(self) -> None:
        """Take one token, sleeping until one is available."""
        async with self._lock:
            self._refill()
            if self.tokens < 1:
                wait_time = (1 - self.tokens) / self.rate
                logger.debug(f"Rate limiter waiting {wait_time:.2f}s")
                await self._sleep(wait_time)
                self._refill()
            self.tokens = max(0.0, self.tokens - 1)


class BaseAPIClient(ABC):
    """
    Async JSON client over a lazily created ``httpx.AsyncClient``.

    Timeouts and connection errors are retried up to three times with
    exponential backoff; error statuses are not. Subclasses supply the
    default headers.
    """

    def __init__(
        self,
        base_url: str,
        settings: Settings | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.settings = settings or get_settings()
        self.rate_limiter = rate_limiter
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """The HTTP client, recreated after ``close``."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                headers=self._get_default_headers(),
            )
        return self._client

    @abstractmethod
    def _get_default_headers(self) -> dict[str, str]:
        """Headers sent with every request."""
        pass

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "BaseAPIClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def _url(self, endpoint: str) -> str:
        """Resolve an endpoint; an empty endpoint is the base URL itself."""
        if not endpoint:
            return self.base_url
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    @retry(
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=4),
        reraise=True,
    )
    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict | None = None,
        json_data: dict | list | None = None,
        headers: dict | None = None,
    ) -> Any:
        if self.rate_limiter:
            await self.rate_limiter.acquire()

        url = self._url(endpoint)
        logger.debug(f"{method} {url}")

        response = await self.client.request(
            method=method,
            url=url,
            params=params,
            json=json_data,
            headers=headers,
        )
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        """
        Decode the body, mapping error statuses to APIError subclasses.

        The body is decoded with its declared charset; ``Response.json()``
        would assume UTF-8.
        """
        if response.status_code == 204 or not response.content:
            data: Any = None
        else:
            try:
                data = json.loads(response.text)
            except ValueError:
                data = {"raw": response.text}

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Authentication failed ({response.status_code})",
                status_code=response.status_code,
                response_data=data,
            )
        if response.status_code == 429:
            raise RateLimitError(
                "Rate limit exceeded",
                status_code=429,
                response_data=data,
            )
        if response.is_error:
            raise APIError(
                f"API request failed: {response.status_code}",
                status_code=response.status_code,
                response_data=data,
            )

        return data

    async def get(self, endpoint: str, params: dict | None = None, headers: dict | None = None) -> Any:
        return await self._request("GET", endpoint, params=params, headers=headers)

    async def post(
        self,
        endpoint: str,
        json_data: dict | list | None = None,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> Any:
        return await self._request(
            "POST", endpoint, json_data=json_data, params=params, headers=headers
        )

    async def patch(
        self,
        endpoint: str,
        json_data: dict | list | None = None,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> Any:
        return await self._request(
            "PATCH", endpoint, json_data=json_data, params=params, headers=headers
        )


def batch_items(items: list[T], batch_size: int) -> list[list[T]]:
    """Split a list into batches of at most ``batch_size``."""
    return [items[i : i + batch_size] for i in range(0, len(items), batch_size)]
