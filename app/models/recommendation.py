from loguru import logger
from pydantic import BaseModel, Field, field_validator

from app.core.constants import DEFAULT_MEDIA_TYPE, MediaType


def _split_csv(value):
    """Accept either a list or a comma-separated string and return a clean list."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    elif not isinstance(value, (list, tuple)):
        raise ValueError("must be a list or a comma-separated string")
    return [str(v).strip() for v in value if str(v).strip()]


class RecommendationRequest(BaseModel):
    """Body of both recommendation endpoints."""

    titles: list[str] = Field(default_factory=list)
    preferences: str | None = None
    genres: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    mediaType: MediaType = DEFAULT_MEDIA_TYPE

    @field_validator("titles", "genres", "exclude", mode="before")
    @classmethod
    def _normalize_list(cls, value):
        return _split_csv(value)

    @field_validator("preferences", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("mediaType", mode="before")
    @classmethod
    def _fallback_media_type(cls, value):
        if value is None:
            return DEFAULT_MEDIA_TYPE
        try:
            return MediaType(str(value).lower())
        except ValueError:
            logger.warning(f"Unknown media type {value!r}, falling back to {DEFAULT_MEDIA_TYPE.value}")
            return DEFAULT_MEDIA_TYPE


class Recommendation(BaseModel):
    """A single normalized recommendation record."""

    title: str
    creator: str
    type: str
    genres: list[str] = Field(default_factory=list)
    description: str
    similarTo: str
    whyRecommended: str
    image: str | None = None
    url: str | None = None
    score: float | None = None
    chapters: int | None = None
    episodes: int | None = None


class RecommendationResponse(BaseModel):
    recommendations: list[Recommendation]
    baseTitle: str
    mediaType: MediaType


class GeneratedRecommendation(BaseModel):
    """Recommendation as returned by the text-generation model; fields are best-effort."""

    title: str
    creator: str | None = None
    type: str | None = None
    genres: list[str] = Field(default_factory=list)
    description: str | None = None
    similarTo: str | None = None
    whyRecommended: str | None = None

    @field_validator("genres", mode="before")
    @classmethod
    def _normalize_genres(cls, value):
        return _split_csv(value)


class GeneratedRecommendationResponse(BaseModel):
    recommendations: list[GeneratedRecommendation]
