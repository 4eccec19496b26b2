"""Read-side helpers for consumers of the catalog: filtering, searching, and how to embed a game."""

from typing import Iterable

from unblockedhub.core.models import GameRecord
from unblockedhub.core.shared_types import Category

ALL_CATEGORIES = "All"
CATEGORY_FILTERS = [ALL_CATEGORIES, *(c.value for c in Category)]

THEME_COLORS = [
    "bg-blue-500",
    "bg-red-500",
    "bg-green-500",
    "bg-yellow-500",
    "bg-purple-500",
    "bg-pink-500",
    "bg-indigo-500",
    "bg-orange-500",
]


def filter_games(
    games: Iterable[GameRecord], category: str = ALL_CATEGORIES, search: str = ""
) -> list[GameRecord]:
    """Keep games in `category` ("All" matches everything) whose title or description contains `search` (case-insensitive)."""
    needle = search.lower()

    def _matches(game: GameRecord) -> bool:
        matches_category = category == ALL_CATEGORIES or game.category == category
        matches_search = (
            needle in game.title.lower() or needle in game.description.lower()
        )
        return matches_category and matches_search

    return [game for game in games if _matches(game)]


def is_embed_markup(url: str) -> bool:
    """
    The url field holds either a link to load in a frame, or literal markup to embed.
    ---
    Anything containing a '<' is treated as markup.
    """
    return "<" in url
