"""Persisted poster cache models."""

from typing import List, Optional

from app.models.media import CamelModel


class SliderItem(CamelModel):
    """A homepage slider banner."""

    id: Optional[str] = None
    poster: Optional[str] = None
    desc: str = ""
    ua: str = ""
    namelogo: Optional[str] = None


class PosterCacheEntry(CamelModel):
    """A single poster; ``seen`` survives refreshes."""

    id: str
    poster_url: str
    category: Optional[str] = None
    seen: bool = False


class PosterCache(CamelModel):
    """Poster cache file contents. ``items`` holds unique ids in display order."""

    slider: List[SliderItem] = []
    items: List[PosterCacheEntry] = []
    last_updated: int = 0  # epoch milliseconds


class MarkSeenRequest(CamelModel):
    ids: List[str]
