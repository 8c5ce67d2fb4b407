import asyncio
from typing import Any

import httpx
from loguru import logger

# Statuses worth another attempt; anything else is final
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


class BaseClient:
    """
    Base asynchronous HTTP client with retry logic and logging.

    Retries back off by at least ``min_backoff`` seconds so that a caller running
    under a rate limit never issues two attempts closer together than the limit.
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 10.0,
        max_retries: int = 1,
        min_backoff: float = 0.5,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.min_backoff = min_backoff
        self.headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx.AsyncClient instance."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the underlying HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _is_retryable(exc: httpx.HTTPError) -> bool:
        if isinstance(exc, httpx.HTTPStatusError):
            return exc.response.status_code in RETRYABLE_STATUSES
        return isinstance(exc, httpx.RequestError)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Internal request handler with retry logic."""
        client = await self.get_client()
        tries = self.max_retries

        for attempt in range(1, tries + 1):
            try:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
            except httpx.HTTPError as e:
                if attempt >= tries or not self._is_retryable(e):
                    logger.error(f"Request failed ({method} {url}) after {attempt} attempt(s): {e}")
                    raise
                wait_time = max(self.min_backoff, 0.5 * (2 ** (attempt - 1)))
                logger.warning(
                    f"Request failed ({method} {url}): {e}. Retrying in {wait_time}s... (Attempt {attempt}/{tries})"
                )
                await asyncio.sleep(wait_time)

        raise httpx.RequestError(f"Request failed for unknown reasons: {method} {url}")

    async def get(self, url: str, params: dict[str, Any] | None = None, **kwargs) -> dict[str, Any]:
        """Perform a GET request and return the JSON response."""
        response = await self._request("GET", url, params=params, **kwargs)
        return response.json()
