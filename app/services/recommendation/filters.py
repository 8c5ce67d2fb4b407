from typing import Any

from app.services.recommendation.metadata import genre_names


class GenreFilter:
    """Include/exclude filtering on genre names, case-insensitive."""

    def __init__(self, include: list[str] | None = None, exclude: list[str] | None = None):
        self.include = {g.lower() for g in include or []}
        self.exclude = {g.lower() for g in exclude or []}

    def passes(self, item: dict[str, Any]) -> bool:
        if not self.include and not self.exclude:
            return True
        item_genres = {g.lower() for g in genre_names(item)}
        if self.include and not (self.include & item_genres):
            return False
        return not (self.exclude & item_genres)

    def apply(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [item for item in items if self.passes(item)]
