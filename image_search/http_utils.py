from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept-Version": "v1",
    "User-Agent": "image-search/0.1",
}

RETRYABLE_STATUS = frozenset({408, 429})


def is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in RETRYABLE_STATUS


class RetryTransport(httpx.AsyncBaseTransport):
    """Retry transient failures beneath an ``httpx.AsyncClient``.

    Server errors, throttling responses and connection-level failures are
    retried with exponential backoff (``backoff_base_seconds ** attempt``).
    Once retries are exhausted the last response is handed back untouched, or
    the last transport error is re-raised, so callers only ever see the final
    attempt.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        *,
        retries: int = 3,
        backoff_base_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport or httpx.AsyncHTTPTransport()
        self.retries = max(0, retries)
        self.backoff_base_seconds = backoff_base_seconds
        self._sleep = sleep

    def backoff_for(self, attempt: int) -> float:
        return float(self.backoff_base_seconds**attempt)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        attempt = 0
        while True:
            try:
                response = await self._transport.handle_async_request(request)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt >= self.retries:
                    raise
                attempt += 1
                delay = self.backoff_for(attempt)
                LOGGER.warning(
                    "%s %s failed (%s: %s); retry %d/%d in %.0fs",
                    request.method,
                    request.url,
                    type(exc).__name__,
                    exc,
                    attempt,
                    self.retries,
                    delay,
                )
                await self._sleep(delay)
                continue

            if not is_retryable_status(response.status_code) or attempt >= self.retries:
                return response

            await response.aclose()
            attempt += 1
            delay = self.backoff_for(attempt)
            LOGGER.warning(
                "%s %s returned %d; retry %d/%d in %.0fs",
                request.method,
                request.url,
                response.status_code,
                attempt,
                self.retries,
                delay,
            )
            await self._sleep(delay)

    async def aclose(self) -> None:
        await self._transport.aclose()
