"""Normalized content models shared by all providers."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for the UI."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Category(str, Enum):
    """Content category inferred from the season list."""

    MOVIE = "Movie"
    SERIES = "Series"


class ProviderKey(str, Enum):
    """Short key of a catalog, in merge order."""

    A = "A"
    B = "B"
    C = "C"


class SeasonSummary(CamelModel):
    """A season with its resolved episode count (0 means unknown)."""

    id: str
    number: str
    episode_count: int = 0


class ContentMetadata(CamelModel):
    """Detail view of a movie or series from one provider."""

    provider: str
    provider_key: ProviderKey
    id: str
    title: str
    year: str
    languages: List[str] = []
    category: Category
    genre: Optional[str] = None
    cast: Optional[str] = None
    rating: Optional[str] = None
    description: Optional[str] = None
    match: Optional[str] = None
    runtime: Optional[str] = None
    quality: Optional[str] = None
    creator: Optional[str] = None
    director: Optional[str] = None
    content_warning: Optional[str] = None
    poster_url: Optional[str] = None
    seasons: Optional[List[SeasonSummary]] = None

    @computed_field
    @property
    def language(self) -> str:
        """Display string, source order preserved."""
        return ", ".join(self.languages) if self.languages else "Unknown"


class Episode(CamelModel):
    """An episode as listed by a provider's episodes endpoint."""

    id: str
    title: str
    season_number: str
    episode_number: str
    description: str
    duration_label: str
    completed_flag: str = "0"


class EpisodeList(CamelModel):
    episodes: List[Episode]


class SearchHit(CamelModel):
    """A lightweight search result for grid display."""

    id: str
    title: str
    provider: str
    provider_key: ProviderKey
    poster_url: str
    year: Optional[str] = None
    duration_label: Optional[str] = None


class AggregatedResult(CamelModel):
    """Merged search results, provider order preserved."""

    query: str
    results: List[SearchHit]
    count: int
    provider: Optional[str] = None
