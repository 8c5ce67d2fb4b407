"""
Manhwa recommendations.

MyAnimeList has no crowd-sourced manhwa graph worth following, so this leans on
the best scored Korean titles and pads with the global manga top list.
"""

from typing import Any

from loguru import logger

from app.core.config import settings
from app.core.constants import MANHWA_RANKED_LIMIT, MANHWA_SEARCH_LIMIT, MANHWA_TOP_LIMIT
from app.core.exceptions import TitleNotFoundError
from app.models.recommendation import Recommendation
from app.services.jikan.service import JikanService
from app.services.recommendation.filters import GenreFilter
from app.services.recommendation.metadata import MANGA_PROFILE, MANHWA_PROFILE, format_recommendation


def looks_like_manhwa(item: dict[str, Any]) -> bool:
    if "manhwa" in (item.get("title") or "").lower():
        return True
    if "korean" in (item.get("background") or "").lower():
        return True
    return any(d.get("name") == "Manhwa" for d in item.get("demographics") or [])


class ManhwaRecommender:
    def __init__(self, jikan: JikanService, limit: int = settings.RECOMMENDATION_LIMIT):
        self.jikan = jikan
        self.limit = limit
        self.profile = MANHWA_PROFILE

    async def find_base(self, titles: list[str]) -> tuple[dict[str, Any], str]:
        """
        Resolve the base entry and the user title it came from.

        Prefers a Korean entry among the first title's results. The second title is
        only tried when the first returns nothing, and then its first hit is used.
        """
        results = await self.jikan.search(self.profile.media, titles[0], limit=MANHWA_SEARCH_LIMIT)
        if results:
            return next((m for m in results if looks_like_manhwa(m)), results[0]), titles[0]

        if len(titles) > 1:
            results = await self.jikan.search(self.profile.media, titles[1], limit=MANHWA_SEARCH_LIMIT)
            if results:
                return results[0], titles[1]
            raise TitleNotFoundError("Could not find manhwa with these titles")

        raise TitleNotFoundError(f'Could not find manhwa "{titles[0]}"')

    async def get_recommendations(
        self,
        titles: list[str],
        genres: list[str] | None = None,
        exclude: list[str] | None = None,
    ) -> tuple[list[Recommendation], dict[str, Any]]:
        base, similar_to = await self.find_base(titles)
        base_id = base.get("mal_id")

        try:
            ranked = await self.jikan.search_ranked(self.profile.media, "manhwa", limit=MANHWA_RANKED_LIMIT)
        except Exception as e:
            logger.warning(f"Failed to fetch ranked manhwa: {e}")
            ranked = []

        candidates = GenreFilter(genres, exclude).apply([m for m in ranked if m.get("mal_id") != base_id])
        seen = {base_id}
        results = []
        for item in candidates:
            rec = format_recommendation(
                item,
                self.profile,
                similar_to,
                "Popular Korean manhwa with similar appeal",
                type_override=self.profile.default_type,
            )
            if rec is not None:
                seen.add(item.get("mal_id"))
                results.append(rec)
            if len(results) >= self.limit:
                break

        if len(results) < self.limit:
            logger.info("Not enough manhwa recommendations, adding top-rated comics")
            results.extend(await self._from_top(seen, similar_to, self.limit - len(results)))

        return results[: self.limit], base

    async def _from_top(self, seen: set[int], similar_to: str, missing: int) -> list[Recommendation]:
        try:
            items = await self.jikan.get_top(MANGA_PROFILE.media, MANHWA_TOP_LIMIT)
        except Exception as e:
            logger.warning(f"Top manga fallback failed: {e}")
            return []

        results = []
        for item in items:
            if len(results) >= missing:
                break
            if item.get("mal_id") in seen:
                continue
            rec = format_recommendation(item, MANGA_PROFILE, similar_to, "Highly rated comic you might enjoy")
            if rec is not None:
                results.append(rec)
        return results
