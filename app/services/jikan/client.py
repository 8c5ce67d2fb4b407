from typing import Any

import httpx

from app.core.base_client import BaseClient
from app.core.config import settings
from app.core.version import __version__


class JikanClient(BaseClient):
    """
    Client for the Jikan v4 API (an unofficial MyAnimeList REST mirror).
    """

    def __init__(
        self,
        base_url: str = settings.JIKAN_BASE_URL,
        timeout: float = settings.JIKAN_TIMEOUT,
        max_retries: int = settings.JIKAN_MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {
            "User-Agent": f"Recomanga/{__version__}",
            "Accept": "application/json",
        }
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            # Retries must not undercut the upstream rate limit
            min_backoff=settings.RATE_LIMIT_DELAY_MS / 1000,
            headers=headers,
            transport=transport,
        )

    async def get_data(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET a Jikan endpoint and unwrap its ``data`` envelope."""
        payload = await self.get(url, params=params)
        if not isinstance(payload, dict):
            return None
        return payload.get("data")
