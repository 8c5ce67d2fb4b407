from fastapi import Depends

from app.services.gemini import GeminiService, get_gemini_service
from app.services.jikan.service import JikanService, get_jikan_service
from app.services.recommendation.engine import RecommendationEngine


def get_recommendation_engine(jikan: JikanService = Depends(get_jikan_service)) -> RecommendationEngine:
    return RecommendationEngine(jikan)


def get_ai_service() -> GeminiService:
    return get_gemini_service()
