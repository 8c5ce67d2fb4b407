from functools import lru_cache
from typing import Any

from async_lru import alru_cache
from loguru import logger

from app.core.config import settings
from app.services.jikan.client import JikanClient
from app.services.request_queue import RequestQueue, get_request_queue


class JikanService:
    """
    Catalog lookups against Jikan.

    Every upstream call is submitted to the shared RequestQueue as exactly one job,
    so callers never need to think about the one-request-per-second limit. Methods
    return the unwrapped ``data`` payload: a list for searches, a dict for details.

    Details and top lists are memoized per instance; a cache hit never reaches the
    queue, and failures are not cached.
    """

    def __init__(
        self,
        client: JikanClient | None = None,
        queue: RequestQueue | None = None,
        cache_ttl: int = settings.JIKAN_CACHE_TTL_SECONDS,
    ):
        self.client = client or JikanClient()
        self.queue = queue or get_request_queue()
        self.get_details = alru_cache(maxsize=5000, ttl=cache_ttl)(self._get_details)
        self.get_top = alru_cache(maxsize=100, ttl=cache_ttl)(self._get_top)

    async def close(self):
        """Close the underlying HTTP client."""
        await self.client.close()

    def clear_cache(self):
        self.get_details.cache_clear()
        self.get_top.cache_clear()

    async def _fetch(self, url: str, params: dict[str, Any] | None = None) -> Any:
        logger.debug(f"Queueing Jikan GET {url} {params or ''}")
        return await self.queue.submit(lambda: self.client.get_data(url, params=params), name=f"GET {url}")

    async def _fetch_list(self, url: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        data = await self._fetch(url, params)
        return data if isinstance(data, list) else []

    async def search(self, media: str, query: str, limit: int = 1) -> list[dict[str, Any]]:
        """Search the catalog by title."""
        return await self._fetch_list(f"/{media}", params={"q": query, "limit": limit})

    async def search_ranked(self, media: str, query: str, limit: int = 10) -> list[dict[str, Any]]:
        """Search by title, best scored first."""
        params = {"q": query, "order_by": "score", "sort": "desc", "limit": limit}
        return await self._fetch_list(f"/{media}", params=params)

    async def search_by_genre(self, media: str, genre_id: int, limit: int = 5) -> list[dict[str, Any]]:
        """Best scored entries for a MyAnimeList genre id."""
        params = {"genres": genre_id, "order_by": "score", "sort": "desc", "limit": limit}
        return await self._fetch_list(f"/{media}", params=params)

    async def get_recommendations(self, media: str, mal_id: int) -> list[dict[str, Any]]:
        """User recommendations for an entry: ``[{"entry": {...}, "votes": n}, ...]``."""
        return await self._fetch_list(f"/{media}/{mal_id}/recommendations")

    async def _get_details(self, media: str, mal_id: int) -> dict[str, Any]:
        data = await self._fetch(f"/{media}/{mal_id}")
        if not isinstance(data, dict):
            # Raising keeps the malformed reply out of the memo
            raise ValueError(f"Unexpected Jikan payload for /{media}/{mal_id}: {type(data).__name__}")
        return data

    async def _get_top(self, media: str, limit: int = 5) -> list[dict[str, Any]]:
        return await self._fetch_list(f"/top/{media}", params={"limit": limit})


@lru_cache(maxsize=1)
def get_jikan_service() -> JikanService:
    return JikanService()
