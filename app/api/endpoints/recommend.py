from fastapi import APIRouter, Depends
from loguru import logger

from app.api.deps import get_ai_service, get_recommendation_engine
from app.core.exceptions import InvalidRequestError, RecommendationError
from app.models.recommendation import (
    GeneratedRecommendationResponse,
    RecommendationRequest,
    RecommendationResponse,
)
from app.services.gemini import GeminiService
from app.services.recommendation.engine import RecommendationEngine

router = APIRouter(prefix="/api", tags=["recommendations"])


@router.post("/recommend", response_model=RecommendationResponse, response_model_exclude_none=True)
async def recommend(
    request: RecommendationRequest,
    engine: RecommendationEngine = Depends(get_recommendation_engine),
):
    """
    Recommend titles from the MyAnimeList catalog.

    Every catalog call is funneled through the shared rate-limited queue, so a
    request costs at least one second per upstream call.
    """
    if not request.titles:
        raise InvalidRequestError("Please provide at least one title")
    try:
        return await engine.get_recommendations(request)
    except RecommendationError:
        raise
    except Exception as e:
        logger.exception(f"Error building {request.mediaType.value} recommendations: {e}")
        raise RecommendationError("Failed to get recommendations", details=str(e))


@router.post("/ai/recommend", response_model=GeneratedRecommendationResponse, response_model_exclude_none=True)
async def recommend_with_ai(
    request: RecommendationRequest,
    gemini: GeminiService = Depends(get_ai_service),
):
    """Recommend manga and manhwa with a text-generation model instead of the catalog."""
    if not request.titles:
        raise InvalidRequestError("No manga/manhwa titles provided")
    try:
        return await gemini.get_recommendations(request)
    except RecommendationError:
        raise
    except Exception as e:
        logger.exception(f"Recommendation error: {e}")
        raise RecommendationError("Failed to get recommendations", details=str(e))
