from dataclasses import dataclass
from typing import Any

from app.core.constants import NO_DESCRIPTION, UNKNOWN_CREATOR, MediaType
from app.models.recommendation import Recommendation


@dataclass(frozen=True)
class MediaProfile:
    """How a Jikan media kind maps onto a Recommendation record."""

    media: str  # Jikan endpoint segment: "manga" or "anime"
    label: str  # Human label used in reasons and errors
    creator_key: str
    default_type: str
    count_field: str


MANGA_PROFILE = MediaProfile(
    media="manga", label="manga", creator_key="authors", default_type="Manga", count_field="chapters"
)
ANIME_PROFILE = MediaProfile(
    media="anime", label="anime", creator_key="studios", default_type="TV", count_field="episodes"
)
# Manhwa live in Jikan's manga catalog
MANHWA_PROFILE = MediaProfile(
    media="manga", label="manhwa", creator_key="authors", default_type="Manhwa", count_field="chapters"
)

PROFILES: dict[MediaType, MediaProfile] = {
    MediaType.MANGA: MANGA_PROFILE,
    MediaType.ANIME: ANIME_PROFILE,
    MediaType.MANHWA: MANHWA_PROFILE,
}


def genre_names(item: dict[str, Any]) -> list[str]:
    return [g.get("name") for g in item.get("genres") or [] if g.get("name")]


def creator_names(item: dict[str, Any], creator_key: str) -> str:
    names = [c.get("name") for c in item.get(creator_key) or [] if c.get("name")]
    return ", ".join(names) or UNKNOWN_CREATOR


def image_url(item: dict[str, Any]) -> str | None:
    images = item.get("images") or {}
    return (images.get("jpg") or {}).get("image_url")


def format_recommendation(
    item: dict[str, Any],
    profile: MediaProfile,
    similar_to: str,
    reason: str,
    type_override: str | None = None,
) -> Recommendation | None:
    """Turn a raw Jikan entry into a Recommendation; ``None`` if it has no title."""
    title = item.get("title")
    if not title:
        return None

    return Recommendation(
        title=title,
        creator=creator_names(item, profile.creator_key),
        type=type_override or item.get("type") or profile.default_type,
        genres=genre_names(item),
        description=item.get("synopsis") or NO_DESCRIPTION,
        similarTo=similar_to,
        whyRecommended=reason,
        image=image_url(item),
        url=item.get("url"),
        score=item.get("score"),
        **{profile.count_field: item.get(profile.count_field)},
    )
