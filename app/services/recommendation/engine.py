import asyncio

import httpx
from loguru import logger

from app.core.constants import MediaType
from app.core.exceptions import UpstreamError
from app.models.recommendation import RecommendationRequest, RecommendationResponse
from app.services.jikan.service import JikanService
from app.services.recommendation.item_based import ItemBasedRecommender
from app.services.recommendation.manhwa import ManhwaRecommender
from app.services.recommendation.metadata import ANIME_PROFILE, MANGA_PROFILE


class RecommendationEngine:
    """
    Routes a recommendation request to the assembler for its media type.
    """

    def __init__(self, jikan: JikanService):
        self.jikan = jikan
        self._recommenders = {
            MediaType.MANGA: ItemBasedRecommender(jikan, MANGA_PROFILE),
            MediaType.ANIME: ItemBasedRecommender(jikan, ANIME_PROFILE),
            MediaType.MANHWA: ManhwaRecommender(jikan),
        }

    async def get_recommendations(self, request: RecommendationRequest) -> RecommendationResponse:
        media_type = request.mediaType
        logger.info(f"Getting {media_type.value} recommendations based on: {', '.join(request.titles)}")

        recommender = self._recommenders[media_type]
        try:
            recommendations, base = await recommender.get_recommendations(
                request.titles, genres=request.genres, exclude=request.exclude
            )
        except httpx.HTTPError as e:
            raise UpstreamError("Failed to get recommendations", details=str(e)) from e
        except asyncio.TimeoutError as e:
            raise UpstreamError("Failed to get recommendations", details="Catalog request timed out") from e

        return RecommendationResponse(
            recommendations=recommendations,
            baseTitle=base.get("title") or request.titles[0],
            mediaType=media_type,
        )
