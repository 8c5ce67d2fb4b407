"""
Core constants used across the application. Keep these simple and documented.
"""

from enum import Enum


class MediaType(str, Enum):
    MANGA = "manga"
    MANHWA = "manhwa"
    ANIME = "anime"


DEFAULT_MEDIA_TYPE: MediaType = MediaType.MANGA

NO_DESCRIPTION: str = "No description available"
UNKNOWN_CREATOR: str = "Unknown"

# Upper bound on items requested per fallback tier
GENRE_FALLBACK_LIMIT: int = 5
TOP_FALLBACK_LIMIT: int = 5
MANHWA_SEARCH_LIMIT: int = 5
MANHWA_RANKED_LIMIT: int = 10
MANHWA_TOP_LIMIT: int = 10
