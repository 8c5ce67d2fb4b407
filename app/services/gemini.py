import asyncio
import json
import re
from functools import lru_cache

from google import genai
from loguru import logger
from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import GenerationError, GenerationUnavailableError
from app.models.recommendation import GeneratedRecommendationResponse, RecommendationRequest

_FENCED = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


def extract_json(text: str) -> str:
    """Return the JSON body of a model reply, unwrapping a markdown code fence if present."""
    match = _FENCED.search(text)
    return (match.group(1) if match else text).strip()


def parse_recommendations(text: str) -> GeneratedRecommendationResponse:
    try:
        return GeneratedRecommendationResponse.model_validate(json.loads(extract_json(text)))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Failed to parse JSON from model reply: {e}")
        raise GenerationError("Failed to generate proper recommendations", details=str(e)) from e


class GeminiService:
    def __init__(self, model: str = settings.DEFAULT_GEMINI_MODEL, api_key: str | None = settings.GEMINI_API_KEY):
        self.model = model
        self.client = None
        if api_key:
            try:
                self.client = genai.Client(api_key=api_key)
            except Exception as e:
                logger.warning(f"Failed to initialize Gemini client: {e}")
        else:
            logger.warning("GEMINI_API_KEY not set. AI recommendations will be disabled.")

    @staticmethod
    def get_prompt(request: RecommendationRequest) -> str:
        lines = [
            "As a manga and manhwa expert, please recommend 5 manga or manhwa based on the following:",
            "",
            f"Titles I've enjoyed: {', '.join(request.titles)}",
        ]
        if request.preferences:
            lines.append(f"What I like about them: {request.preferences}")
        if request.genres:
            lines.append(f"Preferred genres: {', '.join(request.genres)}")
        if request.exclude:
            lines.append(f"Please exclude: {', '.join(request.exclude)}")

        return "\n".join(lines) + """

Format your response as JSON with this structure:
{
  "recommendations": [
    {
      "title": "Title",
      "creator": "Author/Artist",
      "type": "Manga or Manhwa",
      "genres": ["Genre1", "Genre2"],
      "description": "Brief description",
      "similarTo": "Most similar to which title I mentioned",
      "whyRecommended": "Why you're recommending this based on my preferences"
    }
  ]
}

Only return the JSON without any other text. Ensure all manga/manhwa recommendations are real, existing titles.
"""

    def generate_content(self, prompt: str) -> str:
        if not self.client:
            raise GenerationUnavailableError("AI recommendations are not configured")
        response = self.client.models.generate_content(model=self.model, contents=prompt)
        return (response.text or "").strip()

    async def generate_content_async(self, prompt: str) -> str:
        """Async wrapper to avoid blocking the event loop during network calls."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.generate_content(prompt))

    async def get_recommendations(self, request: RecommendationRequest) -> GeneratedRecommendationResponse:
        logger.info(f"Generating AI recommendations based on: {', '.join(request.titles)}")
        try:
            text = await self.generate_content_async(self.get_prompt(request))
        except GenerationError:
            raise
        except Exception as e:
            logger.exception(f"Error generating content with Gemini: {e}")
            raise GenerationError("Failed to generate recommendations", details=str(e)) from e
        return parse_recommendations(text)


@lru_cache(maxsize=1)
def get_gemini_service() -> GeminiService:
    return GeminiService()
