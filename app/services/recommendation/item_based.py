"""
Item-Based Recommendations Service (manga and anime).

Find the liked title on MyAnimeList, then use the crowd-sourced recommendations
for it. Tops up with genre matches and the global top list when too few survive.
"""

import asyncio
from typing import Any

from loguru import logger

from app.core.config import settings
from app.core.constants import GENRE_FALLBACK_LIMIT, TOP_FALLBACK_LIMIT
from app.core.exceptions import TitleNotFoundError
from app.models.recommendation import Recommendation
from app.services.jikan.service import JikanService
from app.services.recommendation.filters import GenreFilter
from app.services.recommendation.metadata import MediaProfile, format_recommendation


class ItemBasedRecommender:
    """
    Handles "people who liked X also liked" recommendations.

    Tiers, in order, until ``limit`` items are collected:
    1. MyAnimeList user recommendations for the base title (genre filters apply)
    2. Best scored entries sharing the base title's first genre
    3. The global top list
    """

    def __init__(
        self,
        jikan: JikanService,
        profile: MediaProfile,
        limit: int = settings.RECOMMENDATION_LIMIT,
        detail_limit: int = settings.RECOMMENDATION_DETAIL_LIMIT,
    ):
        self.jikan = jikan
        self.profile = profile
        self.limit = limit
        self.detail_limit = detail_limit

    async def find_base(self, titles: list[str]) -> dict[str, Any]:
        """
        Resolve the base entry from the first title, falling back to the second.

        Raises:
            TitleNotFoundError: neither of the first two titles matched anything.
        """
        for title in titles[:2]:
            results = await self.jikan.search(self.profile.media, title, limit=1)
            if results:
                return results[0]

        label = self.profile.label
        if len(titles) > 1:
            raise TitleNotFoundError(f'Could not find {label} "{titles[0]}" or "{titles[1]}"')
        raise TitleNotFoundError(f'Could not find {label} "{titles[0]}"')

    async def get_recommendations(
        self,
        titles: list[str],
        genres: list[str] | None = None,
        exclude: list[str] | None = None,
    ) -> tuple[list[Recommendation], dict[str, Any]]:
        """
        Build the recommendation list for ``titles``.

        Returns:
            The capped recommendation list and the matched base entry.
        """
        base = await self.find_base(titles)
        base_id = base.get("mal_id")
        similar_to = titles[0]
        seen: set[int] = {base_id}

        results = await self._from_user_recommendations(base_id, similar_to, GenreFilter(genres, exclude), seen)

        if len(results) < self.limit:
            logger.info(f"Not enough {self.profile.label} recommendations, adding genre-based recommendations")
            results.extend(await self._from_base_genre(base, similar_to, seen))

        if len(results) < self.limit:
            logger.info(f"Still not enough recommendations, adding popular {self.profile.label}")
            results.extend(await self._from_top(similar_to, seen))

        return results[: self.limit], base

    async def _from_user_recommendations(
        self, base_id: int, similar_to: str, genre_filter: GenreFilter, seen: set[int]
    ) -> list[Recommendation]:
        try:
            entries = await self.jikan.get_recommendations(self.profile.media, base_id)
        except Exception as e:
            logger.warning(f"Failed to fetch recommendations for {self.profile.media} {base_id}: {e}")
            return []

        # Details are fetched concurrently but still run one by one through the queue
        tasks = [self._detail(entry, similar_to, genre_filter) for entry in entries[: self.detail_limit]]
        candidates = await asyncio.gather(*tasks)

        results = []
        for mal_id, rec in candidates:
            if rec is None or mal_id in seen:
                continue
            seen.add(mal_id)
            results.append(rec)
        return results

    async def _detail(
        self, entry: dict[str, Any], similar_to: str, genre_filter: GenreFilter
    ) -> tuple[int | None, Recommendation | None]:
        info = entry.get("entry") or {}
        mal_id = info.get("mal_id")
        if mal_id is None:
            return None, None
        try:
            details = await self.jikan.get_details(self.profile.media, mal_id)
        except Exception as e:
            logger.warning(f"Error fetching details for {info.get('title', mal_id)}: {e}")
            return mal_id, None

        if not details or not genre_filter.passes(details):
            return mal_id, None

        reason = f"Recommended by {entry.get('votes', 0)} MyAnimeList users who also enjoyed {similar_to}"
        return mal_id, format_recommendation(details, self.profile, similar_to, reason)

    async def _from_base_genre(self, base: dict[str, Any], similar_to: str, seen: set[int]) -> list[Recommendation]:
        base_genres = base.get("genres") or []
        if not base_genres:
            return []

        genre = base_genres[0]
        try:
            items = await self.jikan.search_by_genre(self.profile.media, genre.get("mal_id"), GENRE_FALLBACK_LIMIT)
        except Exception as e:
            logger.warning(f"Genre fallback failed for {self.profile.media} genre {genre.get('name')}: {e}")
            return []

        reason = f"Shares the {genre.get('name')} genre with {similar_to}"
        return self._collect(items, similar_to, reason, seen)

    async def _from_top(self, similar_to: str, seen: set[int]) -> list[Recommendation]:
        try:
            items = await self.jikan.get_top(self.profile.media, TOP_FALLBACK_LIMIT)
        except Exception as e:
            logger.warning(f"Top {self.profile.media} fallback failed: {e}")
            return []

        reason = f"This is a highly rated {self.profile.label} on MyAnimeList"
        return self._collect(items, similar_to, reason, seen)

    def _collect(self, items: list[dict[str, Any]], similar_to: str, reason: str, seen: set[int]) -> list[Recommendation]:
        results = []
        for item in items:
            mal_id = item.get("mal_id")
            if mal_id in seen:
                continue
            rec = format_recommendation(item, self.profile, similar_to, reason)
            if rec is None:
                continue
            seen.add(mal_id)
            results.append(rec)
        return results
